# -*- coding: utf-8 -*-
"""
Model Evaluation Module

Responsibilities:
- Compute regression metrics (R², RMSE, MAE) for a set of predictions
- Keep the R² baseline tied to the evaluated set's own mean

R² is undefined when every actual value is identical (SS_tot == 0). In that
case r2_score returns 1.0 when the predictions are also exact (SS_res == 0)
and 0.0 otherwise, so a degenerate holdout never yields NaN or infinity.
"""

import logging
from typing import Dict, NamedTuple, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


class EvaluationMetrics(NamedTuple):
    """Regression metrics for one evaluated sample set"""
    r2: float
    rmse: float
    mae: float

    def to_dict(self) -> Dict[str, float]:
        return {'r2': self.r2, 'rmse': self.rmse, 'mae': self.mae}


def _as_arrays(actual: ArrayLike, predicted: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert inputs to flat float arrays and check they can be compared

    Raises:
        ValueError: If the inputs are empty or have different lengths
    """
    actual_arr = np.asarray(actual, dtype=float).ravel()
    predicted_arr = np.asarray(predicted, dtype=float).ravel()

    if actual_arr.size == 0:
        raise ValueError("Cannot evaluate an empty set of predictions")
    if actual_arr.size != predicted_arr.size:
        raise ValueError(
            f"Length mismatch: {actual_arr.size} actual values vs {predicted_arr.size} predictions"
        )
    return actual_arr, predicted_arr


def r2_score(actual: ArrayLike, predicted: ArrayLike) -> float:
    """
    Coefficient of determination relative to the mean of `actual`

    Args:
        actual: Observed target values
        predicted: Model predictions, same length as `actual`

    Returns:
        1 - SS_res / SS_tot, or the degenerate-set value described in the
        module docstring when SS_tot is zero
    """
    actual_arr, predicted_arr = _as_arrays(actual, predicted)

    ss_res = float(np.sum((actual_arr - predicted_arr) ** 2))
    ss_tot = float(np.sum((actual_arr - np.mean(actual_arr)) ** 2))

    if ss_tot == 0.0:
        logger.debug("R² undefined for constant targets, applying degenerate policy")
        return 1.0 if ss_res == 0.0 else 0.0

    return 1.0 - ss_res / ss_tot


def root_mean_squared_error(actual: ArrayLike, predicted: ArrayLike) -> float:
    """Square root of the mean squared residual"""
    actual_arr, predicted_arr = _as_arrays(actual, predicted)
    ss_res = float(np.sum((actual_arr - predicted_arr) ** 2))
    return float(np.sqrt(ss_res / actual_arr.size))


def mean_absolute_error(actual: ArrayLike, predicted: ArrayLike) -> float:
    actual_arr, predicted_arr = _as_arrays(actual, predicted)
    return float(np.mean(np.abs(actual_arr - predicted_arr)))


def calculate_metrics(actual: ArrayLike, predicted: ArrayLike) -> EvaluationMetrics:
    """
    Calculate R², RMSE and MAE for a set of predictions

    Args:
        actual: Observed target values
        predicted: Model predictions

    Returns:
        EvaluationMetrics for the evaluated set
    """
    return EvaluationMetrics(
        r2=r2_score(actual, predicted),
        rmse=root_mean_squared_error(actual, predicted),
        mae=mean_absolute_error(actual, predicted),
    )
