# -*- coding: utf-8 -*-
"""
Charts Module

Bar charts of feature importance and of the tuning leaderboard, rendered
off-screen and written to PNG files.
"""

import os
import logging
from typing import Dict, List, Tuple, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ..training.hyperparameter_tuning import TuningResult

logger = logging.getLogger(__name__)


def _prepare_output(output_path: str) -> None:
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def plot_feature_importance(importances: Union[Dict[str, float], List[Tuple[str, float]]],
                            output_path: str, top_n: int = 10) -> str:
    """
    Draw a horizontal bar chart of the most important features

    Args:
        importances: Mapping or (name, importance) pairs, most important first
        output_path: PNG file to write
        top_n: Number of features drawn

    Returns:
        str: Path to the saved chart
    """
    items = list(importances.items()) if isinstance(importances, dict) else list(importances)
    frame = pd.DataFrame(items[:top_n], columns=['feature', 'importance'])
    if frame.empty:
        raise ValueError("No feature importance to plot")

    _prepare_output(output_path)
    sns.set(style="whitegrid")

    plt.figure(figsize=(10, max(3, 0.5 * len(frame) + 1)))
    sns.barplot(x='importance', y='feature', data=frame, color='steelblue')
    plt.title(f'Top {len(frame)} Features by Split Frequency')
    plt.xlabel('Splits per tree')
    plt.ylabel('Feature')
    plt.tight_layout()
    plt.savefig(output_path)
    plt.close()

    logger.info(f"Saved feature importance chart to {output_path}")
    return output_path


def plot_leaderboard(result: TuningResult, output_path: str, top_n: int = 10) -> str:
    """
    Draw the Test R² of the best configurations

    Args:
        result: Successful TuningResult
        output_path: PNG file to write
        top_n: Number of configurations drawn

    Returns:
        str: Path to the saved chart
    """
    result.raise_for_status()

    frame = result.to_frame().head(top_n).copy()
    frame['configuration'] = frame.apply(
        lambda row: f"#{int(row['rank'])} T{row['tree_count']} D{row['max_depth']} "
                    f"S{row['min_samples_split']} L{row['min_samples_leaf']} {row['max_features']}",
        axis=1,
    )

    _prepare_output(output_path)
    sns.set(style="whitegrid")

    plt.figure(figsize=(12, 6))
    ax = sns.barplot(x='configuration', y='test_r2', data=frame, color='seagreen')
    for i, value in enumerate(frame['test_r2']):
        ax.text(i, value, f"{value:.3f}", ha='center', va='bottom')
    plt.title('Test R² by Configuration')
    plt.xlabel('Configuration')
    plt.ylabel('Test R²')
    plt.xticks(rotation=45, ha='right')
    plt.tight_layout()
    plt.savefig(output_path)
    plt.close()

    logger.info(f"Saved leaderboard chart to {output_path}")
    return output_path
