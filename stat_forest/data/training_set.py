# -*- coding: utf-8 -*-
"""
Training Set Module

This module provides the ordered container of (feature vector, target) samples
consumed by the forest and the tuner, together with the positional train/test
split. The split never shuffles: the first fraction of the sequence (usually
the oldest games) becomes Train and the remainder becomes Test, approximating
"train on past games, evaluate on future games".
"""

import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .feature_schema import FeatureSchema, FeatureSchemaError

logger = logging.getLogger(__name__)


class InsufficientDataError(ValueError):
    """Raised when a training set is empty or too small to split"""
    pass


class TrainingSample(NamedTuple):
    """One historical observation"""
    features: Mapping[str, float]
    target: float


class TrainingSet:
    """
    Ordered, immutable sequence of TrainingSamples
    """

    def __init__(self, samples: Iterable[Union[TrainingSample, Tuple[Mapping[str, float], float]]]):
        self._samples = tuple(
            sample if isinstance(sample, TrainingSample) else TrainingSample(*sample)
            for sample in samples
        )

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], target_key: str,
                     feature_keys: Optional[Sequence[str]] = None) -> 'TrainingSet':
        """
        Build a training set from flat dict records

        Args:
            records: Records holding feature values and the target
            target_key: Key of the target value in each record
            feature_keys: Keys to use as features (default: every key except the target)

        Returns:
            TrainingSet preserving the record order
        """
        samples = []
        for position, record in enumerate(records):
            if target_key not in record:
                raise FeatureSchemaError(f"Record {position} has no target '{target_key}'")

            keys = feature_keys if feature_keys is not None else [k for k in record if k != target_key]
            features = {key: record[key] for key in keys if key in record}
            samples.append(TrainingSample(features, record[target_key]))

        return cls(samples)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, target_column: str,
                   feature_columns: Optional[Sequence[str]] = None) -> 'TrainingSet':
        """
        Build a training set from a DataFrame, keeping row order

        Args:
            frame: DataFrame with one row per observation
            target_column: Column holding the target
            feature_columns: Columns to use as features (default: all other columns)

        Returns:
            TrainingSet with one sample per row
        """
        if target_column not in frame.columns:
            raise FeatureSchemaError(f"DataFrame has no target column '{target_column}'")

        if feature_columns is None:
            feature_columns = [column for column in frame.columns if column != target_column]

        missing = [column for column in feature_columns if column not in frame.columns]
        if missing:
            raise FeatureSchemaError(f"DataFrame is missing feature columns: {missing}")

        feature_records = frame.loc[:, list(feature_columns)].to_dict(orient='records')
        targets = frame[target_column].tolist()

        logger.info(f"Loaded {len(feature_records)} samples with {len(feature_columns)} features from DataFrame")
        return cls(TrainingSample(features, target) for features, target in zip(feature_records, targets))

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[TrainingSample]:
        return iter(self._samples)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return TrainingSet(self._samples[item])
        return self._samples[item]

    def __repr__(self) -> str:
        return f"TrainingSet(n_samples={len(self._samples)})"

    @property
    def feature_vectors(self) -> List[Mapping[str, float]]:
        return [sample.features for sample in self._samples]

    @property
    def targets(self) -> np.ndarray:
        return np.asarray([sample.target for sample in self._samples], dtype=float)

    def split(self, train_fraction: float = 0.8) -> Tuple['TrainingSet', 'TrainingSet']:
        """
        Split positionally into Train and Test

        Args:
            train_fraction: Share of leading samples used for training, in (0, 1)

        Returns:
            Tuple of (train, test) training sets

        Raises:
            ValueError: If train_fraction is outside (0, 1)
            InsufficientDataError: If either side of the split would be empty
        """
        if not 0.0 < train_fraction < 1.0:
            raise ValueError(f"train_fraction must be between 0 and 1, got {train_fraction}")

        n_samples = len(self._samples)
        split_index = int(math.floor(n_samples * train_fraction))

        if split_index < 1 or split_index >= n_samples:
            raise InsufficientDataError(
                f"Cannot split {n_samples} samples at fraction {train_fraction}: "
                f"train would have {split_index} and test {n_samples - split_index} samples"
            )

        return TrainingSet(self._samples[:split_index]), TrainingSet(self._samples[split_index:])

    def to_arrays(self, schema: FeatureSchema) -> Tuple[np.ndarray, np.ndarray]:
        """
        Convert the samples into a feature matrix and target vector

        Args:
            schema: Feature schema fixing the column order

        Returns:
            Tuple of (X, y) float arrays

        Raises:
            InsufficientDataError: If the set is empty
            FeatureSchemaError: If a vector or target is invalid
        """
        if not self._samples:
            raise InsufficientDataError("Training set is empty")

        X = schema.matrix(self.feature_vectors)

        try:
            y = self.targets
        except (TypeError, ValueError) as e:
            raise FeatureSchemaError(f"Targets must be numeric: {str(e)}") from e

        if not np.all(np.isfinite(y)):
            bad_positions = np.flatnonzero(~np.isfinite(y)).tolist()
            raise FeatureSchemaError(f"Non-finite targets at positions {bad_positions[:10]}")

        return X, y

    def describe(self) -> Dict[str, Any]:
        """Summary counts used in logs and model summaries"""
        y = self.targets if self._samples else np.array([])
        return {
            'n_samples': len(self._samples),
            'target_mean': float(np.mean(y)) if y.size else None,
            'target_std': float(np.std(y)) if y.size else None,
        }
