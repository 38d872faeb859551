#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Stat Forest - Main Module

This is the command-line entry point of the forest trainer. It loads a CSV of
historical observations, tunes a random forest over a hyperparameter grid,
reports the leaderboard and feature importance, and saves the selected model.
A saved model can then be applied to a new CSV of feature vectors.

Usage:
    stat-forest tune --data games.csv --target points
    stat-forest predict --model results/models/random_forest.json --data upcoming.csv
"""

import os
import sys
import argparse
import logging
from datetime import datetime
from typing import List, Optional

import pandas as pd

from ..data.training_set import TrainingSet
from ..output.display import display_feature_importance, display_leaderboard
from ..output.persistence import build_model_summary, load_model, save_leaderboard, save_model, save_model_summary
from ..training.config import get_default_config, load_param_grid
from ..training.hyperparameter_tuning import HyperparameterTuner
from ..utils.logger import setup_logging

logger = logging.getLogger(__name__)

APP_NAME = "stat_forest"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments

    Args:
        argv: Argument list (default: sys.argv[1:])

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Random forest trainer for player stat projections")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tune_parser = subparsers.add_parser("tune", help="Tune and train a forest on a CSV of observations")
    tune_parser.add_argument("--data", required=True, help="CSV file with one row per observation")
    tune_parser.add_argument("--target", required=True, help="Column holding the value to predict")
    tune_parser.add_argument(
        "--features",
        type=str,
        help="Comma-separated feature columns in schema order. Defaults to every other column."
    )
    tune_parser.add_argument("--grid", type=str, help="JSON file with the hyperparameter grid")
    tune_parser.add_argument("--config", type=str, help="JSON configuration file merged over the defaults")
    tune_parser.add_argument("--train-fraction", type=float, help="Leading share of rows used for training")
    tune_parser.add_argument("--seed", type=int, help="Random seed for the search")
    tune_parser.add_argument("--n-jobs", type=int, help="Parallel workers evaluating configurations")
    tune_parser.add_argument("--output-dir", type=str, help="Directory for models, summaries and logs")
    tune_parser.add_argument("--no-save", action="store_true", help="Do not save the model or reports")
    tune_parser.add_argument("--plots", action="store_true", help="Save importance and leaderboard charts")
    tune_parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    predict_parser = subparsers.add_parser("predict", help="Apply a saved model to a CSV of feature vectors")
    predict_parser.add_argument("--model", required=True, help="JSON model file written by 'tune'")
    predict_parser.add_argument("--data", required=True, help="CSV file with the model's feature columns")
    predict_parser.add_argument("--output", type=str, help="CSV file for the predictions (default: print)")
    predict_parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> dict:
    overrides = {'training': {}, 'paths': {}}
    if getattr(args, 'output_dir', None):
        overrides['paths'] = {
            'output_dir': args.output_dir,
            'models_dir': os.path.join(args.output_dir, 'models'),
            'logs_dir': os.path.join(args.output_dir, 'logs'),
        }
    if getattr(args, 'train_fraction', None) is not None:
        overrides['training']['train_fraction'] = args.train_fraction
    if getattr(args, 'seed', None) is not None:
        overrides['training']['random_state'] = args.seed
    if getattr(args, 'n_jobs', None) is not None:
        overrides['training']['n_jobs'] = args.n_jobs
    if getattr(args, 'plots', False):
        overrides['reporting'] = {'save_plots': True}

    return get_default_config(getattr(args, 'config', None), overrides)


def run_tuning(args: argparse.Namespace, config: dict) -> int:
    """
    Tune, report and save a forest

    Returns:
        int: Exit code
    """
    training_config = config['training']
    reporting = config['reporting']
    paths = config['paths']

    frame = pd.read_csv(args.data)
    feature_names = [name.strip() for name in args.features.split(",")] if args.features else None
    training_set = TrainingSet.from_frame(frame, args.target, feature_names)
    logger.info(f"Loaded {len(training_set)} observations from {args.data}")

    param_grid = load_param_grid(args.grid) if args.grid else training_config['param_grid']

    tuner = HyperparameterTuner(
        train_fraction=training_config['train_fraction'],
        random_state=training_config['random_state'],
        n_jobs=training_config['n_jobs'],
        max_thresholds=training_config['max_thresholds'],
        leaderboard_log_size=reporting['leaderboard_size'],
    )
    result = tuner.tune(training_set, feature_names, param_grid)

    display_leaderboard(result, top_n=reporting['leaderboard_size'])
    if not result.succeeded:
        logger.error("Hyperparameter tuning failed for every configuration")
        return 1

    importance = result.best_model.get_feature_importance()
    display_feature_importance(importance, top_n=reporting['top_features'])

    if args.no_save:
        logger.info("Skipping saving results (--no-save)")
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        model_path = save_model(result.best_model,
                                os.path.join(paths['models_dir'], f"random_forest_{timestamp}.json"))
        summary = build_model_summary(result, len(training_set), top_features=reporting['top_features'])
        summary['modelPath'] = model_path
        save_model_summary(summary, paths['output_dir'])
        save_leaderboard(result, paths['output_dir'])

    if reporting['save_plots']:
        from ..presentation.charts import plot_feature_importance, plot_leaderboard

        plots_dir = os.path.join(paths['output_dir'], 'plots')
        plot_feature_importance(importance, os.path.join(plots_dir, "feature_importance.png"),
                                top_n=reporting['top_features'])
        plot_leaderboard(result, os.path.join(plots_dir, "leaderboard.png"),
                         top_n=reporting['leaderboard_size'])

    return 0


def run_prediction(args: argparse.Namespace) -> int:
    """
    Predict with a saved model

    Returns:
        int: Exit code
    """
    model = load_model(args.model)
    frame = pd.read_csv(args.data)

    predictions = frame.copy()
    predictions['prediction'] = model.predict(frame)
    logger.info(f"Generated {len(predictions)} predictions with {model.name}")

    if args.output:
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        predictions.to_csv(args.output, index=False)
        logger.info(f"Saved predictions to {args.output}")
    else:
        print(predictions.to_string(index=False))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function of the stat-forest command
    """
    args = parse_arguments(argv)

    try:
        config = _resolve_config(args)
    except Exception as e:
        print(f"Error loading configuration: {str(e)}", file=sys.stderr)
        return 1

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(APP_NAME, log_level, log_dir=config['paths']['logs_dir'])
    logger.info(f"Starting stat-forest {args.command}")

    try:
        if args.command == "tune":
            exit_code = run_tuning(args, config)
        else:
            exit_code = run_prediction(args)

        if exit_code == 0:
            logger.info(f"stat-forest {args.command} completed successfully")
        return exit_code

    except Exception as e:
        logger.error(f"Unexpected error in main function: {str(e)}")
        logger.exception("Stack trace:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
