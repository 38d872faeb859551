# -*- coding: utf-8 -*-
"""
Hyperparameter Tuning for the Stat Forest Trainer

This module selects a forest configuration by exhaustive grid search against a
positional holdout. The training set is split once (first train_fraction of
the samples for training, the rest for testing) and every configuration is
fit on the same Train part and scored by Test R², so all configurations are
compared on the identical holdout.

A configuration that raises during fit or evaluation is logged and skipped;
the search only fails as a whole when every configuration fails, in which case
the returned TuningResult is tagged as failed instead of carrying a default
model. Configurations may be evaluated in parallel with joblib; the
leaderboard is always re-sorted by score (ties by enumeration order), so it
does not depend on scheduling.
"""

import itertools
import logging
import math
import time
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

import pandas as pd
from joblib import Parallel, delayed
from sklearn.utils import check_random_state

from .config import DEFAULT_PARAM_GRID
from .evaluators import EvaluationMetrics
from ..data.feature_schema import resolve_schema
from ..data.training_set import InsufficientDataError, TrainingSet
from ..models.decision_tree import MAX_THRESHOLD_CANDIDATES
from ..models.random_forest import SEED_UPPER_BOUND, ForestEnsemble, HyperparameterConfiguration

logger = logging.getLogger(__name__)

TUNING_SUCCEEDED = 'success'
TUNING_FAILED = 'failed'

# Accepted grid keys, in snake_case and camelCase
PARAMETER_ALIASES = {
    'tree_count': 'tree_count',
    'treeCount': 'tree_count',
    'n_estimators': 'tree_count',
    'nEstimators': 'tree_count',
    'max_depth': 'max_depth',
    'maxDepth': 'max_depth',
    'min_samples_split': 'min_samples_split',
    'minSamplesSplit': 'min_samples_split',
    'min_samples_leaf': 'min_samples_leaf',
    'minSamplesLeaf': 'min_samples_leaf',
    'max_features': 'max_features',
    'maxFeatures': 'max_features',
    'maxFeaturesStrategy': 'max_features',
    'max_features_strategy': 'max_features',
}


class TuningError(RuntimeError):
    """Raised when a tuning run produced no usable configuration"""
    pass


class InvalidParameterGridError(ValueError):
    """Raised for unknown grid keys or invalid candidate values"""
    pass


class EmptyParameterGridError(InvalidParameterGridError):
    """Raised when a grid yields no configurations to evaluate"""
    pass


class LeaderboardEntry(NamedTuple):
    index: int
    config: HyperparameterConfiguration
    train_metrics: EvaluationMetrics
    test_metrics: EvaluationMetrics
    score: float


class ConfigurationFailure(NamedTuple):
    index: int
    config: HyperparameterConfiguration
    error: str


class TuningResult:
    """
    Outcome of a grid search

    On success, best_model is the already fitted forest of the top leaderboard
    entry. On failure (every configuration raised), the leaderboard is empty,
    best_model is None and failures lists what went wrong.
    """

    def __init__(self, status: str, leaderboard: List[LeaderboardEntry],
                 failures: List[ConfigurationFailure], best_model: Optional[ForestEnsemble],
                 feature_names: Sequence[str], n_train: int, n_test: int,
                 duration: float = 0.0):
        self.status = status
        self.leaderboard = leaderboard
        self.failures = failures
        self.best_model = best_model
        self.feature_names = list(feature_names)
        self.n_train = n_train
        self.n_test = n_test
        self.duration = duration

    @property
    def succeeded(self) -> bool:
        return self.status == TUNING_SUCCEEDED

    @property
    def best_entry(self) -> Optional[LeaderboardEntry]:
        return self.leaderboard[0] if self.leaderboard else None

    @property
    def best_config(self) -> Optional[HyperparameterConfiguration]:
        return self.leaderboard[0].config if self.leaderboard else None

    @property
    def best_metrics(self) -> Optional[EvaluationMetrics]:
        return self.leaderboard[0].test_metrics if self.leaderboard else None

    def raise_for_status(self) -> 'TuningResult':
        if not self.succeeded:
            details = '; '.join(f"#{failure.index}: {failure.error}" for failure in self.failures[:5])
            raise TuningError(f"All {len(self.failures)} configurations failed ({details})")
        return self

    def top(self, n: int = 10) -> List[LeaderboardEntry]:
        return self.leaderboard[:n]

    def to_frame(self) -> pd.DataFrame:
        """Leaderboard as a DataFrame, one row per evaluated configuration"""
        rows = []
        for rank, entry in enumerate(self.leaderboard, start=1):
            row = {'rank': rank}
            row.update(entry.config.to_dict())
            row.update({f"train_{k}": v for k, v in entry.train_metrics.to_dict().items()})
            row.update({f"test_{k}": v for k, v in entry.test_metrics.to_dict().items()})
            row['score'] = entry.score
            rows.append(row)

        columns = ['rank', *HyperparameterConfiguration._fields,
                   'train_r2', 'train_rmse', 'train_mae', 'test_r2', 'test_rmse', 'test_mae', 'score']
        return pd.DataFrame(rows, columns=columns)

    def __repr__(self) -> str:
        return (f"TuningResult(status={self.status}, evaluated={len(self.leaderboard)}, "
                f"failed={len(self.failures)}, best={self.best_config})")


def normalize_param_grid(param_grid: Mapping[str, Sequence[Any]]) -> Dict[str, List[Any]]:
    """
    Map grid keys to configuration field names and check every candidate list

    Raises:
        InvalidParameterGridError: On an unknown or duplicated parameter
        EmptyParameterGridError: On an empty candidate list
    """
    if not param_grid:
        raise EmptyParameterGridError("Parameter grid is empty; no configurations to evaluate")

    normalized: Dict[str, List[Any]] = {}
    for key, values in param_grid.items():
        field = PARAMETER_ALIASES.get(key)
        if field is None:
            raise InvalidParameterGridError(
                f"Unknown hyperparameter '{key}'; expected one of {sorted(HyperparameterConfiguration._fields)}"
            )
        if field in normalized:
            raise InvalidParameterGridError(f"Hyperparameter '{field}' given more than once (as '{key}')")
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise InvalidParameterGridError(f"Candidates for '{key}' must be a list, got {values!r}")
        if len(values) == 0:
            raise EmptyParameterGridError(
                f"Hyperparameter '{key}' has no candidate values; the grid would be empty"
            )
        normalized[field] = list(values)

    return normalized


def expand_param_grid(param_grid: Mapping[str, Sequence[Any]]) -> List[HyperparameterConfiguration]:
    """
    Cartesian product of the grid as validated configurations

    Parameters missing from the grid take the HyperparameterConfiguration
    defaults. Loops nest in field order (tree_count outermost, then max_depth,
    min_samples_split, min_samples_leaf and max_features innermost).
    """
    normalized = normalize_param_grid(param_grid)

    configurations = []
    fields = [field for field in HyperparameterConfiguration._fields if field in normalized]
    for values in itertools.product(*(normalized[field] for field in fields)):
        params = dict(zip(fields, values))
        try:
            configurations.append(HyperparameterConfiguration(**params).validate())
        except ValueError as e:
            raise InvalidParameterGridError(f"Invalid configuration {params}: {str(e)}") from e

    return configurations


def _evaluate_configuration(index: int, config: HyperparameterConfiguration,
                            train_set: TrainingSet, test_set: TrainingSet,
                            feature_names: Sequence[str], seed: int,
                            max_thresholds: int) -> Tuple[int, Optional[ForestEnsemble],
                                                          Optional[Tuple[EvaluationMetrics, EvaluationMetrics]],
                                                          Optional[str]]:
    """
    Fit and score one configuration, returning the error instead of raising

    Runs inside joblib workers, so failures travel back as values and are
    logged by the caller.
    """
    try:
        model = ForestEnsemble(config, random_state=seed, max_thresholds=max_thresholds)
        model.fit(train_set, feature_names)
        train_metrics = model.evaluate(train_set)
        test_metrics = model.evaluate(test_set)

        if not math.isfinite(test_metrics.r2):
            raise FloatingPointError(f"Non-finite test R² {test_metrics.r2}")

        return index, model, (train_metrics, test_metrics), None
    except Exception as e:
        return index, None, None, f"{type(e).__name__}: {str(e)}"


class HyperparameterTuner:
    """
    Grid search over forest configurations scored by holdout R²
    """

    def __init__(self, train_fraction: float = 0.8, random_state: Optional[int] = None,
                 n_jobs: int = 1, max_thresholds: int = MAX_THRESHOLD_CANDIDATES,
                 leaderboard_log_size: int = 10):
        """
        Initialize the tuner

        Args:
            train_fraction: Leading share of the samples used for training
            random_state: Seed from which every configuration's forest seed is drawn
            n_jobs: joblib workers evaluating configurations
            max_thresholds: Candidate thresholds per feature per node
            leaderboard_log_size: Entries logged when the search finishes
        """
        if not 0.0 < train_fraction < 1.0:
            raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")

        self.train_fraction = train_fraction
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.max_thresholds = max_thresholds
        self.leaderboard_log_size = leaderboard_log_size

    def tune(self, training_set: TrainingSet, feature_names: Optional[Sequence[str]] = None,
             param_grid: Optional[Mapping[str, Sequence[Any]]] = None) -> TuningResult:
        """
        Evaluate every configuration in the grid and rank them by Test R²

        Args:
            training_set: Ordered samples (typically chronological)
            feature_names: Explicit feature order (default: first sample's key order)
            param_grid: Mapping from hyperparameter name to candidate values
                (default: the production grid from config)

        Returns:
            TuningResult with the best fitted forest and the full leaderboard,
            or a failed TuningResult when every configuration raised

        Raises:
            EmptyParameterGridError: If the grid yields no configurations
            InvalidParameterGridError: If the grid has unknown keys or invalid values
            InsufficientDataError: If the training set cannot be split
            FeatureSchemaError: If a sample does not match the feature schema
        """
        if param_grid is None:
            param_grid = DEFAULT_PARAM_GRID

        configurations = expand_param_grid(param_grid)

        if not isinstance(training_set, TrainingSet):
            training_set = TrainingSet(training_set)
        if len(training_set) == 0:
            raise InsufficientDataError("Training set is empty")

        schema = resolve_schema(feature_names, training_set[0].features)
        train_set, test_set = training_set.split(self.train_fraction)

        # Contract violations surface here, before any configuration runs
        train_set.to_arrays(schema)
        test_set.to_arrays(schema)

        seeds = check_random_state(self.random_state).randint(SEED_UPPER_BOUND, size=len(configurations))

        logger.info(f"Starting hyperparameter tuning: {len(configurations)} configurations, "
                    f"{len(train_set)} train / {len(test_set)} test samples, {len(schema)} features")
        start_time = time.time()

        if self.n_jobs == 1:
            outcomes = []
            for index, config in enumerate(configurations):
                if (index + 1) % 10 == 0:
                    logger.info(f"Testing configuration {index + 1}/{len(configurations)}")
                outcomes.append(_evaluate_configuration(index, config, train_set, test_set, schema.names,
                                                        int(seeds[index]), self.max_thresholds))
        else:
            outcomes = Parallel(n_jobs=self.n_jobs)(
                delayed(_evaluate_configuration)(index, config, train_set, test_set, schema.names,
                                                 int(seeds[index]), self.max_thresholds)
                for index, config in enumerate(configurations)
            )

        leaderboard: List[LeaderboardEntry] = []
        failures: List[ConfigurationFailure] = []
        models: Dict[int, ForestEnsemble] = {}

        for index, model, metrics, error in outcomes:
            config = configurations[index]
            if error is not None:
                logger.warning(f"Skipped configuration {index + 1} {config.to_dict()} due to error: {error}")
                failures.append(ConfigurationFailure(index, config, error))
                continue

            train_metrics, test_metrics = metrics
            leaderboard.append(LeaderboardEntry(index, config, train_metrics, test_metrics, test_metrics.r2))
            models[index] = model

        leaderboard.sort(key=lambda entry: (-entry.score, entry.index))
        failures.sort(key=lambda failure: failure.index)
        duration = time.time() - start_time

        if not leaderboard:
            logger.error(f"Hyperparameter tuning failed: all {len(configurations)} configurations raised")
            return TuningResult(TUNING_FAILED, [], failures, None, schema.names,
                                len(train_set), len(test_set), duration)

        best = leaderboard[0]
        self._log_leaderboard(leaderboard)
        logger.info(f"Hyperparameter tuning completed in {duration:.2f} seconds with best "
                    f"Test R² {best.score:.4f}: {best.config.to_dict()}")

        return TuningResult(TUNING_SUCCEEDED, leaderboard, failures, models[best.index], schema.names,
                            len(train_set), len(test_set), duration)

    def _log_leaderboard(self, leaderboard: List[LeaderboardEntry]) -> None:
        logger.info(f"Top {min(self.leaderboard_log_size, len(leaderboard))} parameter combinations:")
        for rank, entry in enumerate(leaderboard[:self.leaderboard_log_size], start=1):
            metrics = entry.test_metrics
            logger.info(f"  {rank}. R²={metrics.r2 * 100:.1f}%, RMSE={metrics.rmse:.2f}, "
                        f"MAE={metrics.mae:.2f} | {entry.config.to_dict()}")
