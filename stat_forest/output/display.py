# -*- coding: utf-8 -*-
"""
Display Module for the Stat Forest Trainer

This module contains functions for printing tuning results and feature
importance as console tables.
"""

import logging
from typing import Dict, List, Tuple, Union

from ..training.hyperparameter_tuning import TuningResult

logger = logging.getLogger(__name__)


def display_leaderboard(result: TuningResult, top_n: int = 10) -> None:
    """
    Print the best configurations of a tuning run

    Args:
        result: TuningResult to display
        top_n: Number of leaderboard entries shown
    """
    print("=" * 80)
    print(f"HYPERPARAMETER TUNING | {result.status.upper()}")
    print("=" * 80)
    print(f"\nTrain samples: {result.n_train} | Test samples: {result.n_test} | "
          f"Evaluated: {len(result.leaderboard)} | Failed: {len(result.failures)}\n")

    if not result.succeeded:
        print("No configuration could be evaluated:")
        for failure in result.failures[:top_n]:
            print(f"  #{failure.index + 1} {failure.config.to_dict()}: {failure.error}")
        print("-" * 80)
        return

    print(f"Top {min(top_n, len(result.leaderboard))} parameter combinations:")
    header = f"{'Rank':>4}  {'Trees':>5}  {'Depth':>5}  {'Split':>5}  {'Leaf':>4}  {'Features':>8}  " \
             f"{'Test R²':>8}  {'RMSE':>8}  {'MAE':>8}"
    print(header)
    print("-" * len(header))
    for rank, entry in enumerate(result.top(top_n), start=1):
        config, metrics = entry.config, entry.test_metrics
        print(f"{rank:>4}  {config.tree_count:>5}  {config.max_depth:>5}  {config.min_samples_split:>5}  "
              f"{config.min_samples_leaf:>4}  {str(config.max_features):>8}  "
              f"{metrics.r2 * 100:>7.1f}%  {metrics.rmse:>8.2f}  {metrics.mae:>8.2f}")
    print("-" * 80)


def display_feature_importance(importances: Union[Dict[str, float], List[Tuple[str, float]]],
                               top_n: int = 10) -> None:
    """
    Print the most important features with a text bar

    Args:
        importances: Mapping or (name, importance) pairs, most important first
        top_n: Number of features shown
    """
    items = list(importances.items()) if isinstance(importances, dict) else list(importances)
    items = items[:top_n]

    print(f"\nTop {len(items)} most important features:")
    if not items:
        print("  (none)")
        return

    width = max(len(name) for name, _ in items)
    peak = max(value for _, value in items) or 1.0
    for rank, (name, value) in enumerate(items, start=1):
        bar = "#" * int(round(30 * value / peak))
        print(f"  {rank:>2}. {name:<{width}}  {value:6.3f}  {bar}")
