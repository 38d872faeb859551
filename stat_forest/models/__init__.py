# -*- coding: utf-8 -*-
"""
Models Package

Regression trees and the random forest built from them.
"""

from .base_model import BaseModel, ModelStateError
from .decision_tree import DecisionTree, DecisionTreeBuilder, InternalNode, Leaf
from .random_forest import ForestEnsemble, HyperparameterConfiguration

__all__ = [
    'BaseModel',
    'ModelStateError',
    'DecisionTree',
    'DecisionTreeBuilder',
    'InternalNode',
    'Leaf',
    'ForestEnsemble',
    'HyperparameterConfiguration'
]
