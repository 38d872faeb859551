#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Training Configuration

This module defines configuration settings and constants for the forest trainer:
- Base paths and output directories
- Default hyperparameter grid and tuning settings
- Reporting options

Used by the CLI and the tuner so every run starts from the same defaults.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Base directory for the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

OUTPUT_DIR_ENV = 'STAT_FOREST_OUTPUT_DIR'

# Grid used for the production points model: a single, already tuned configuration
DEFAULT_PARAM_GRID: Dict[str, List[Any]] = {
    'tree_count': [150],
    'max_depth': [12],
    'min_samples_split': [5],
    'min_samples_leaf': [2],
    'max_features': ['sqrt'],
}

# Wider grid for exploratory tuning runs
SEARCH_PARAM_GRID: Dict[str, List[Any]] = {
    'tree_count': [50, 100, 150],
    'max_depth': [8, 10, 12],
    'min_samples_split': [2, 5, 10],
    'min_samples_leaf': [1, 2, 4],
    'max_features': ['sqrt', 'log2', 0.5],
}


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config(config_path: Optional[str] = None, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Get default configuration for the trainer

    Args:
        config_path: Path to a JSON configuration file merged over the defaults
        config: Configuration dictionary merged last (overrides config_path)

    Returns:
        Dictionary with configuration settings
    """
    output_dir = os.environ.get(OUTPUT_DIR_ENV, str(BASE_DIR / 'results'))

    default_config = {
        'paths': {
            'output_dir': output_dir,
            'models_dir': os.path.join(output_dir, 'models'),
            'logs_dir': os.path.join(output_dir, 'logs'),
        },
        'training': {
            'train_fraction': 0.8,
            'random_state': 42,
            'n_jobs': 1,
            'max_thresholds': 20,
            'param_grid': copy.deepcopy(DEFAULT_PARAM_GRID),
        },
        'reporting': {
            'leaderboard_size': 10,
            'top_features': 10,
            'save_plots': False,
        },
    }

    if config_path:
        try:
            with open(config_path, 'r') as f:
                file_config = json.load(f)
            default_config = _deep_merge(default_config, file_config)
            logger.info(f"Loaded configuration from {config_path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading configuration from {config_path}: {str(e)}")
            raise

    if config:
        default_config = _deep_merge(default_config, config)

    return default_config


def load_param_grid(grid_path: str) -> Dict[str, List[Any]]:
    """
    Load a hyperparameter grid from a JSON file

    Args:
        grid_path: Path to a JSON object mapping parameter names to candidate lists

    Returns:
        The parameter grid
    """
    with open(grid_path, 'r') as f:
        grid = json.load(f)

    if not isinstance(grid, dict):
        raise ValueError(f"Parameter grid in {grid_path} must be a JSON object")

    logger.info(f"Loaded parameter grid with {len(grid)} parameters from {grid_path}")
    return grid
