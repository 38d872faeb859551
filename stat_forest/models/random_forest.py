# -*- coding: utf-8 -*-
"""
Random Forest Model for the Stat Forest Trainer

This module implements the bootstrap-aggregated forest of regression trees used
to project player stat lines. Each tree is grown on its own bootstrap resample
of the training set with its own per-node feature draws; the forest prediction
is the unweighted mean of the tree predictions.

Every tree receives a seed drawn up front from the forest's random state, so a
seeded forest is reproducible whether its trees are grown sequentially or in
parallel with joblib.

Feature importance is split frequency: the number of internal nodes, across
all trees, that split on a feature, divided by the number of trees. It is a
cheaper proxy than impurity-weighted importance and downstream comparisons
assume exactly this definition.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from sklearn.utils import check_random_state

from .base_model import BaseModel
from .decision_tree import MAX_THRESHOLD_CANDIDATES, DecisionTree, DecisionTreeBuilder
from ..data.feature_schema import FeatureSchema, FeatureSchemaError, resolve_schema
from ..data.training_set import InsufficientDataError, TrainingSample, TrainingSet

logger = logging.getLogger(__name__)

MAX_FEATURES_STRATEGIES = ('sqrt', 'log2')
SEED_UPPER_BOUND = np.iinfo(np.int32).max


class HyperparameterConfiguration(NamedTuple):
    """
    Forest hyperparameters

    max_features is 'sqrt', 'log2', or a float in (0, 1] giving a fixed
    fraction of the features drawn at each node.
    """
    tree_count: int = 100
    max_depth: int = 10
    min_samples_split: int = 5
    min_samples_leaf: int = 2
    max_features: Union[str, float] = 'sqrt'

    def validate(self) -> 'HyperparameterConfiguration':
        """
        Check every field, returning self so calls can be chained

        Raises:
            ValueError: On a non-positive count or depth or an unknown strategy
        """
        for field in ('tree_count', 'max_depth', 'min_samples_split', 'min_samples_leaf'):
            value = getattr(self, field)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise ValueError(f"{field} must be a positive integer, got {value!r}")

        strategy = self.max_features
        if isinstance(strategy, str):
            if strategy not in MAX_FEATURES_STRATEGIES:
                raise ValueError(
                    f"max_features must be one of {MAX_FEATURES_STRATEGIES} or a fraction, got '{strategy}'"
                )
        elif isinstance(strategy, bool) or not isinstance(strategy, (float, int)) or not 0.0 < strategy <= 1.0:
            raise ValueError(f"max_features fraction must be in (0, 1], got {strategy!r}")

        return self

    def feature_subset_size(self, n_features: int) -> int:
        """Number of features drawn at each node for a schema of n_features"""
        if self.max_features == 'sqrt':
            size = math.ceil(math.sqrt(n_features))
        elif self.max_features == 'log2':
            size = math.ceil(math.log2(n_features)) if n_features > 1 else 1
        else:
            size = math.ceil(float(self.max_features) * n_features)
        return int(max(1, min(size, n_features)))

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._asdict())


def _grow_tree(X: np.ndarray, y: np.ndarray, feature_names: Sequence[str],
               config: HyperparameterConfiguration, subset_size: int,
               max_thresholds: int, seed: int) -> DecisionTree:
    """Draw one bootstrap resample and grow a tree on it"""
    rng = np.random.RandomState(seed)
    n_samples = y.size
    indices = rng.randint(0, n_samples, size=n_samples)

    builder = DecisionTreeBuilder(
        max_depth=config.max_depth,
        min_samples_split=config.min_samples_split,
        min_samples_leaf=config.min_samples_leaf,
        feature_subset_size=subset_size,
        max_thresholds=max_thresholds,
        random_state=rng,
    )
    root = builder.build(X[indices], y[indices], feature_names)
    return DecisionTree(root, feature_names)


class ForestEnsemble(BaseModel):
    """
    Bootstrap-aggregated forest of regression trees

    The forest owns its trees and the feature schema used to translate named
    feature vectors into the positional rows the trees expect.
    """

    def __init__(self, config: Optional[HyperparameterConfiguration] = None,
                 random_state: Optional[int] = None, n_jobs: int = 1,
                 max_thresholds: int = MAX_THRESHOLD_CANDIDATES,
                 name: str = "RandomForest", version: int = 1):
        """
        Initialize the forest

        Args:
            config: Hyperparameters (defaults to HyperparameterConfiguration())
            random_state: Seed for bootstrap and feature draws; None is unseeded
            n_jobs: joblib workers used to grow trees
            max_thresholds: Candidate thresholds evaluated per feature per node
            name: Model name
            version: Model version number
        """
        super().__init__(name=name, version=version)
        self.config = (config or HyperparameterConfiguration()).validate()
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.max_thresholds = max_thresholds
        self.schema: Optional[FeatureSchema] = None
        self.trees: List[DecisionTree] = []

    def get_params(self) -> Dict[str, Any]:
        return {
            'config': self.config,
            'random_state': self.random_state,
            'n_jobs': self.n_jobs,
            'max_thresholds': self.max_thresholds,
            'name': self.name,
            'version': self.version,
        }

    def fit(self, training_set: Union[TrainingSet, Sequence[TrainingSample]],
            feature_names: Optional[Sequence[str]] = None) -> 'ForestEnsemble':
        """
        Grow tree_count trees, each on its own bootstrap resample

        Args:
            training_set: Samples to train on
            feature_names: Explicit feature order (default: first vector's key order)

        Returns:
            self, fitted

        Raises:
            ModelStateError: If the forest is already fitted
            FeatureSchemaError: If a sample does not match the schema
            InsufficientDataError: If the training set is empty
        """
        self._check_not_trained()
        if not isinstance(training_set, TrainingSet):
            training_set = TrainingSet(training_set)

        if len(training_set) == 0:
            raise InsufficientDataError("Cannot fit a forest on an empty training set")

        schema = resolve_schema(feature_names, training_set[0].features)
        X, y = training_set.to_arrays(schema)

        subset_size = self.config.feature_subset_size(len(schema))
        seeds = check_random_state(self.random_state).randint(
            SEED_UPPER_BOUND, size=self.config.tree_count
        )

        logger.info(
            f"Training {self.name} with {self.config.tree_count} trees on {len(y)} samples "
            f"and {len(schema)} features (max_depth={self.config.max_depth}, "
            f"max_features={self.config.max_features})"
        )

        try:
            if self.n_jobs == 1:
                trees = []
                for i, seed in enumerate(seeds):
                    if i % 20 == 0:
                        logger.debug(f"Tree {i + 1}/{self.config.tree_count}")
                    trees.append(_grow_tree(X, y, schema.names, self.config, subset_size,
                                            self.max_thresholds, int(seed)))
            else:
                trees = Parallel(n_jobs=self.n_jobs)(
                    delayed(_grow_tree)(X, y, schema.names, self.config, subset_size,
                                        self.max_thresholds, int(seed))
                    for seed in seeds
                )
        except Exception as e:
            logger.error(f"Error training {self.name} model: {str(e)}")
            raise

        self.schema = schema
        self.trees = list(trees)
        self._mark_trained(list(schema.names))
        logger.info(f"{self.name} trained successfully")
        return self

    def _feature_matrix(self, feature_vectors) -> np.ndarray:
        if isinstance(feature_vectors, TrainingSet):
            feature_vectors = feature_vectors.feature_vectors
        elif isinstance(feature_vectors, Mapping):
            raise FeatureSchemaError("predict expects a sequence of feature vectors, not a single mapping")
        return self.schema.matrix(feature_vectors)

    def predict(self, feature_vectors) -> np.ndarray:
        """
        Average the predictions of every tree

        Args:
            feature_vectors: Sequence of feature mappings, a DataFrame, or a TrainingSet

        Returns:
            Array with one prediction per input vector

        Raises:
            ModelStateError: If the forest has not been fitted
            FeatureSchemaError: If an input does not match the fitted schema
        """
        self._check_is_trained()
        X = self._feature_matrix(feature_vectors)
        if X.shape[0] == 0:
            return np.empty(0, dtype=float)

        totals = np.zeros(X.shape[0], dtype=float)
        for tree in self.trees:
            totals += tree.predict(X)
        return totals / len(self.trees)

    def predict_one(self, feature_vector: Mapping[str, float]) -> float:
        return float(self.predict([feature_vector])[0])

    def get_feature_importance(self) -> Dict[str, float]:
        """
        Split-frequency importance per feature

        Returns:
            Dictionary mapping every feature name to (splits on it) / tree_count,
            sorted from most to least important
        """
        self._check_is_trained()

        counts = {name: 0 for name in self.schema.names}
        for tree in self.trees:
            for name, count in tree.split_counts().items():
                counts[name] += count

        n_trees = len(self.trees)
        importance = {name: count / n_trees for name, count in counts.items()}
        # sorted() is stable, so ties keep schema order
        return dict(sorted(importance.items(), key=lambda item: item[1], reverse=True))

    def get_top_features(self, n: int = 10) -> List[Tuple[str, float]]:
        return list(self.get_feature_importance().items())[:n]

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the fitted forest, trees included

        Returns:
            JSON-compatible dictionary understood by from_dict
        """
        self._check_is_trained()
        return {
            'model_type': 'random_forest',
            'name': self.name,
            'version': self.version,
            'config': self.config.to_dict(),
            'random_state': self.random_state,
            'max_thresholds': self.max_thresholds,
            'feature_names': list(self.schema.names),
            'trained_at': self.trained_at.isoformat() if self.trained_at else None,
            'trees': [tree.to_dict() for tree in self.trees],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForestEnsemble':
        """Rebuild a fitted forest from to_dict output"""
        if data.get('model_type') != 'random_forest':
            raise ValueError(f"Not a random forest model: {data.get('model_type')!r}")

        forest = cls(
            config=HyperparameterConfiguration(**data['config']),
            random_state=data.get('random_state'),
            max_thresholds=data.get('max_thresholds', MAX_THRESHOLD_CANDIDATES),
            name=data.get('name', 'RandomForest'),
            version=data.get('version', 1),
        )
        schema = FeatureSchema(data['feature_names'])
        forest.schema = schema
        forest.trees = [DecisionTree.from_dict(tree, schema.names) for tree in data['trees']]
        if not forest.trees:
            raise ValueError("Serialized forest contains no trees")

        forest._mark_trained(list(schema.names))
        if data.get('trained_at'):
            forest.trained_at = datetime.fromisoformat(data['trained_at'])
        return forest

    def __repr__(self) -> str:
        state = f"{len(self.trees)} trees" if self.is_trained else "unfitted"
        return f"ForestEnsemble({self.config}, {state})"
