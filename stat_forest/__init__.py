# -*- coding: utf-8 -*-
"""
Stat Forest

Random forest regression for player stat projections: a from-scratch
bootstrap-aggregated forest of regression trees, a grid-search
hyperparameter tuner scored on a positional holdout, and the R², RMSE and
MAE evaluators used to rank configurations.
"""

__version__ = '1.0.0'

from .training.evaluators import EvaluationMetrics, calculate_metrics
from .data.feature_schema import FeatureSchema, FeatureSchemaError
from .data.training_set import InsufficientDataError, TrainingSample, TrainingSet
from .models.base_model import ModelStateError
from .models.random_forest import ForestEnsemble, HyperparameterConfiguration
from .training.hyperparameter_tuning import (
    EmptyParameterGridError,
    HyperparameterTuner,
    InvalidParameterGridError,
    TuningError,
    TuningResult
)

__all__ = [
    # Data
    'FeatureSchema',
    'TrainingSample',
    'TrainingSet',

    # Models
    'ForestEnsemble',
    'HyperparameterConfiguration',

    # Training
    'HyperparameterTuner',
    'TuningResult',
    'EvaluationMetrics',
    'calculate_metrics',

    # Errors
    'FeatureSchemaError',
    'InsufficientDataError',
    'ModelStateError',
    'EmptyParameterGridError',
    'InvalidParameterGridError',
    'TuningError'
]
