# -*- coding: utf-8 -*-
"""
Output Package

This package contains modules for displaying tuning results and for saving
models, summaries and leaderboards.
"""

from .display import display_feature_importance, display_leaderboard
from .persistence import (
    build_model_summary,
    load_model,
    load_model_pickle,
    save_leaderboard,
    save_model,
    save_model_pickle,
    save_model_summary
)

__all__ = [
    # Display functions
    'display_feature_importance',
    'display_leaderboard',

    # Persistence functions
    'build_model_summary',
    'load_model',
    'load_model_pickle',
    'save_leaderboard',
    'save_model',
    'save_model_pickle',
    'save_model_summary'
]
