# -*- coding: utf-8 -*-
"""
Training Package

Metrics, configuration and hyperparameter tuning for the forest trainer.
"""
