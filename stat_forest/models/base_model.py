# -*- coding: utf-8 -*-
"""
Base Model for the Stat Forest Trainer

This module provides the BaseModel class that serves as a foundation for the
regression models in the system. It defines the common interface (fit, predict,
feature importance) and the shared evaluation and bookkeeping behavior.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np

from ..training.evaluators import EvaluationMetrics, calculate_metrics

logger = logging.getLogger(__name__)


class ModelStateError(RuntimeError):
    """Raised when a model is used before fitting or fitted twice"""
    pass


class BaseModel(ABC):
    """
    Abstract base class for all regression models

    A fitted model is never retrained in place: fitting an already fitted
    model raises ModelStateError, and clone() returns a fresh unfitted copy.
    """

    model_type = 'regression'

    def __init__(self, name: str, version: int = 1):
        """
        Initialize the base model

        Args:
            name: Name of the model (e.g., 'RandomForest')
            version: Model version number
        """
        self.name = name
        self.version = version
        self.trained_at: Optional[datetime] = None
        self.feature_names: List[str] = []
        self.is_trained = False

    @abstractmethod
    def fit(self, training_set, feature_names=None) -> 'BaseModel':
        """
        Train the model on the provided data

        Args:
            training_set: TrainingSet to fit on
            feature_names: Optional explicit feature order
        """
        pass

    @abstractmethod
    def predict(self, feature_vectors) -> np.ndarray:
        """
        Make predictions using the trained model

        Args:
            feature_vectors: Feature vectors, DataFrame or TrainingSet

        Returns:
            Array of predictions
        """
        pass

    @abstractmethod
    def get_feature_importance(self) -> Dict[str, float]:
        """
        Get the feature importance from the trained model

        Returns:
            Dictionary mapping feature names to importance scores
        """
        pass

    @abstractmethod
    def get_params(self) -> Dict[str, Any]:
        pass

    def clone(self) -> 'BaseModel':
        """Unfitted copy carrying the same parameters"""
        return type(self)(**self.get_params())

    def _check_is_trained(self) -> None:
        if not self.is_trained:
            raise ModelStateError(f"Model {self.name} has not been fitted yet")

    def _check_not_trained(self) -> None:
        if self.is_trained:
            raise ModelStateError(
                f"Model {self.name} is already fitted; use clone() to train a new model"
            )

    def _mark_trained(self, feature_names: List[str]) -> None:
        self.feature_names = list(feature_names)
        self.trained_at = datetime.now(timezone.utc)
        self.is_trained = True

    def evaluate(self, training_set) -> EvaluationMetrics:
        """
        Evaluate the model on a labelled sample set

        Args:
            training_set: TrainingSet with the targets to compare against

        Returns:
            EvaluationMetrics relative to the mean of this set
        """
        self._check_is_trained()

        try:
            predictions = self.predict(training_set)
            metrics = calculate_metrics(training_set.targets, predictions)
            logger.debug(f"{self.name} evaluation on {len(training_set)} samples: {metrics.to_dict()}")
            return metrics
        except Exception as e:
            logger.error(f"Error evaluating model {self.name}: {str(e)}")
            raise
