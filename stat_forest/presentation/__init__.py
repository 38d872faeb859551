# -*- coding: utf-8 -*-
"""
Presentation Package

Charts of tuning results and feature importance.
"""
