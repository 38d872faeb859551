# -*- coding: utf-8 -*-
"""
Persistence Module

This module provides functions for saving trained forests, model summaries
and tuning leaderboards. Forests are written either as portable JSON (trees as
nested node dictionaries) or as joblib pickles.
"""

import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import joblib

from ..models.random_forest import ForestEnsemble
from ..training.hyperparameter_tuning import TuningResult

logger = logging.getLogger(__name__)

MODEL_FORMAT_VERSION = 1


def save_model(model: ForestEnsemble, path: str) -> str:
    """
    Save a fitted forest as JSON

    Args:
        model: Fitted ForestEnsemble
        path: Destination file

    Returns:
        str: Path to the saved file

    Raises:
        ModelStateError: If the model has not been fitted
    """
    payload = {'format_version': MODEL_FORMAT_VERSION}
    payload.update(model.to_dict())

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    try:
        with open(path, 'w') as f:
            json.dump(payload, f)
    except OSError as e:
        logger.error(f"Failed to save model to {path}: {str(e)}")
        raise

    logger.info(f"Saved {model.name} with {len(model.trees)} trees to {path}")
    return path


def load_model(path: str) -> ForestEnsemble:
    """
    Load a forest saved by save_model

    Args:
        path: Path to the JSON model file

    Returns:
        ForestEnsemble: Fitted forest
    """
    try:
        with open(path, 'r') as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load model from {path}: {str(e)}")
        raise

    format_version = payload.get('format_version')
    if format_version != MODEL_FORMAT_VERSION:
        raise ValueError(f"Unsupported model format version {format_version!r} in {path}")

    model = ForestEnsemble.from_dict(payload)
    logger.info(f"Loaded {model.name} with {len(model.trees)} trees from {path}")
    return model


def save_model_pickle(model: ForestEnsemble, path: str) -> str:
    """Save a fitted forest with joblib"""
    model._check_is_trained()

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    joblib.dump(model, path)
    logger.info(f"Saved pickled model to {path}")
    return path


def load_model_pickle(path: str) -> ForestEnsemble:
    """Load a forest saved by save_model_pickle"""
    model = joblib.load(path)
    if not isinstance(model, ForestEnsemble):
        raise TypeError(f"{path} does not contain a ForestEnsemble (found {type(model).__name__})")

    logger.info(f"Loaded pickled model from {path}")
    return model


def build_model_summary(result: TuningResult, training_set_size: Optional[int] = None,
                        top_features: int = 10) -> Dict[str, Any]:
    """
    Build the saved record describing the selected model

    Args:
        result: Successful TuningResult
        training_set_size: Total number of samples (default: train + test)
        top_features: Number of features listed under featureImportance

    Returns:
        dict: JSON-compatible summary

    Raises:
        TuningError: If the tuning run failed
    """
    result.raise_for_status()

    model = result.best_model
    best = result.best_entry
    importance = model.get_top_features(top_features)

    return {
        'modelType': 'random_forest',
        'hyperparameters': best.config.to_dict(),
        'performance': {
            'rSquared': best.test_metrics.r2,
            'rmse': best.test_metrics.rmse,
            'mae': best.test_metrics.mae,
        },
        'trainPerformance': {
            'rSquared': best.train_metrics.r2,
            'rmse': best.train_metrics.rmse,
            'mae': best.train_metrics.mae,
        },
        'features': list(result.feature_names),
        'featureImportance': [{'feature': name, 'importance': value} for name, value in importance],
        'trainingData': {
            'total': training_set_size if training_set_size is not None else result.n_train + result.n_test,
            'train': result.n_train,
            'test': result.n_test,
        },
        'trainedAt': (model.trained_at or datetime.now(timezone.utc)).isoformat(),
    }


def save_model_summary(summary: Dict[str, Any], output_dir: str = "results",
                       prefix: str = "model_summary") -> str:
    """
    Save a model summary to a timestamped JSON file

    Args:
        summary: Summary from build_model_summary
        output_dir: Directory to save the file to
        prefix: Prefix for the output filename

    Returns:
        str: Path to the saved JSON file

    Raises:
        RuntimeError: If the summary cannot be saved
    """
    try:
        os.makedirs(output_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        json_path = os.path.join(output_dir, f"{prefix}_{timestamp}.json")

        with open(json_path, "w") as f:
            json.dump(summary, f, indent=2, default=str)
        logger.info(f"Saved model summary to {json_path}")

        return json_path

    except Exception as e:
        logger.error(f"Failed to save model summary: {str(e)}")
        raise RuntimeError(f"Failed to save model summary: {str(e)}") from e


def save_leaderboard(result: TuningResult, output_dir: str = "results",
                     prefix: str = "leaderboard") -> str:
    """
    Save the tuning leaderboard to a timestamped CSV file

    Args:
        result: TuningResult to export
        output_dir: Directory to save the file to
        prefix: Prefix for the output filename

    Returns:
        str: Path to the saved CSV file

    Raises:
        RuntimeError: If the leaderboard cannot be saved
    """
    try:
        os.makedirs(output_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        csv_path = os.path.join(output_dir, f"{prefix}_{timestamp}.csv")

        result.to_frame().to_csv(csv_path, index=False)
        logger.info(f"Saved leaderboard with {len(result.leaderboard)} entries to {csv_path}")

        return csv_path

    except Exception as e:
        logger.error(f"Failed to save leaderboard: {str(e)}")
        raise RuntimeError(f"Failed to save leaderboard: {str(e)}") from e
