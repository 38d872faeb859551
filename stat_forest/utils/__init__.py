# -*- coding: utf-8 -*-
"""
Utilities Package
"""
