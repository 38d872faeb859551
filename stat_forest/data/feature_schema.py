# -*- coding: utf-8 -*-
"""
Feature Schema Module

A FeatureSchema fixes the ordered list of feature names once, at fit time, and
translates named feature vectors into the positional rows the trees index into.
Every translation is validated: a missing name, an unexpected name, or a
non-finite value raises FeatureSchemaError instead of silently producing a
misaligned row.
"""

import logging
import math
from numbers import Real
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class FeatureSchemaError(ValueError):
    """Raised when a feature vector does not match the fitted schema"""
    pass


class FeatureSchema:
    """
    Immutable, ordered set of feature names shared by fit and predict
    """

    __slots__ = ('_names', '_index')

    def __init__(self, names: Iterable[str]):
        """
        Args:
            names: Feature names in the order the trees will see them

        Raises:
            FeatureSchemaError: If the list is empty or contains duplicates
        """
        names = tuple(str(name) for name in names)
        if not names:
            raise FeatureSchemaError("A feature schema needs at least one feature name")

        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise FeatureSchemaError(f"Duplicate feature names: {duplicates}")

        self._names = names
        self._index = {name: i for i, name in enumerate(names)}

    @classmethod
    def from_vector(cls, vector: Mapping[str, Any]) -> 'FeatureSchema':
        """Build a schema from the key order of a single feature vector"""
        return cls(list(vector.keys()))

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise FeatureSchemaError(f"Unknown feature '{name}'") from None

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self):
        return iter(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureSchema):
            return NotImplemented
        return self._names == other._names

    def __hash__(self) -> int:
        return hash(self._names)

    def __repr__(self) -> str:
        return f"FeatureSchema({list(self._names)})"

    def row(self, vector: Mapping[str, Any]) -> List[float]:
        """
        Translate one feature vector into a positional row

        Args:
            vector: Mapping from feature name to numeric value

        Returns:
            List of floats in schema order

        Raises:
            FeatureSchemaError: On missing or unexpected names and on
                non-numeric or non-finite values
        """
        missing = [name for name in self._names if name not in vector]
        if missing:
            raise FeatureSchemaError(f"Feature vector is missing required features: {missing}")

        if len(vector) != len(self._names):
            extra = sorted(str(key) for key in vector if key not in self._index)
            raise FeatureSchemaError(f"Feature vector has unexpected features: {extra}")

        return [_finite_value(name, vector[name]) for name in self._names]

    def matrix(self, vectors: Sequence[Mapping[str, Any]]) -> np.ndarray:
        """
        Translate many feature vectors (or a DataFrame) into a 2-D float array

        DataFrame columns are selected by name, so extra columns are ignored and
        column order does not matter. Missing columns still raise.
        """
        if isinstance(vectors, pd.DataFrame):
            return self._frame_matrix(vectors)

        rows = [self.row(vector) for vector in vectors]
        if not rows:
            return np.empty((0, len(self._names)), dtype=float)
        return np.asarray(rows, dtype=float)

    def _frame_matrix(self, frame: pd.DataFrame) -> np.ndarray:
        missing = [name for name in self._names if name not in frame.columns]
        if missing:
            raise FeatureSchemaError(f"DataFrame is missing required feature columns: {missing}")

        bool_columns = [name for name in self._names if pd.api.types.is_bool_dtype(frame[name])]
        if bool_columns:
            raise FeatureSchemaError(f"Feature columns must be numeric, got booleans in: {bool_columns}")

        try:
            values = frame.loc[:, list(self._names)].to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise FeatureSchemaError(f"Feature columns must be numeric: {str(e)}") from e

        if not np.all(np.isfinite(values)):
            bad_columns = [
                name for name, column in zip(self._names, values.T) if not np.all(np.isfinite(column))
            ]
            raise FeatureSchemaError(f"Non-finite values in feature columns: {bad_columns}")
        return values


def _finite_value(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (Real, np.integer, np.floating)):
        raise FeatureSchemaError(f"Feature '{name}' must be numeric, got {type(value).__name__}")

    value = float(value)
    if not math.isfinite(value):
        raise FeatureSchemaError(f"Feature '{name}' has non-finite value {value}")
    return value


def resolve_schema(feature_names: Optional[Iterable[str]],
                   first_vector: Optional[Mapping[str, Any]] = None) -> FeatureSchema:
    """
    Resolve the schema for a fit call

    An explicit name list wins; otherwise the first vector's key order is used.
    """
    if isinstance(feature_names, FeatureSchema):
        return feature_names
    if feature_names is not None:
        return FeatureSchema(feature_names)
    if first_vector is None:
        raise FeatureSchemaError("Cannot infer feature names without a feature vector")

    schema = FeatureSchema.from_vector(first_vector)
    logger.debug(f"Inferred feature schema from first vector: {list(schema.names)}")
    return schema
