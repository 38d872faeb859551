# -*- coding: utf-8 -*-
"""
Data Package

Feature schemas and ordered training sets.
"""

from .feature_schema import FeatureSchema, FeatureSchemaError, resolve_schema
from .training_set import InsufficientDataError, TrainingSample, TrainingSet

__all__ = [
    'FeatureSchema',
    'FeatureSchemaError',
    'resolve_schema',
    'InsufficientDataError',
    'TrainingSample',
    'TrainingSet'
]
