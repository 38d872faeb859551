# -*- coding: utf-8 -*-
"""
Scripts Package

Command-line entry points.
"""
