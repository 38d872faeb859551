#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tests for the random forest model
"""

import os
import sys
import unittest

import numpy as np
import pandas as pd

# Add project root to path if needed for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from stat_forest.data.feature_schema import FeatureSchemaError
from stat_forest.data.training_set import InsufficientDataError, TrainingSample, TrainingSet
from stat_forest.models.base_model import ModelStateError
from stat_forest.models.random_forest import ForestEnsemble, HyperparameterConfiguration


def make_training_set(n_samples=200, seed=0):
    """Samples with features a, b, c uniform in [0, 10] and target 2a + c"""
    rng = np.random.RandomState(seed)
    samples = []
    for a, b, c in rng.uniform(0, 10, size=(n_samples, 3)):
        samples.append(TrainingSample({'a': a, 'b': b, 'c': c}, 2 * a + c))
    return TrainingSet(samples)


class TestHyperparameterConfiguration(unittest.TestCase):
    """Test case for forest hyperparameters"""

    def test_defaults(self):
        config = HyperparameterConfiguration()
        self.assertEqual(config.tree_count, 100)
        self.assertEqual(config.max_depth, 10)
        self.assertEqual(config.min_samples_split, 5)
        self.assertEqual(config.min_samples_leaf, 2)
        self.assertEqual(config.max_features, 'sqrt')

    def test_feature_subset_size(self):
        self.assertEqual(HyperparameterConfiguration(max_features='sqrt').feature_subset_size(3), 2)
        self.assertEqual(HyperparameterConfiguration(max_features='sqrt').feature_subset_size(16), 4)
        self.assertEqual(HyperparameterConfiguration(max_features='log2').feature_subset_size(8), 3)
        self.assertEqual(HyperparameterConfiguration(max_features='log2').feature_subset_size(1), 1)
        self.assertEqual(HyperparameterConfiguration(max_features=0.5).feature_subset_size(5), 3)
        self.assertEqual(HyperparameterConfiguration(max_features=1.0).feature_subset_size(5), 5)

    def test_invalid_values_rejected(self):
        invalid = [
            {'tree_count': 0},
            {'max_depth': -1},
            {'min_samples_split': 2.5},
            {'min_samples_leaf': True},
            {'max_features': 'auto'},
            {'max_features': 1.5},
        ]
        for overrides in invalid:
            with self.subTest(**overrides):
                with self.assertRaises(ValueError):
                    HyperparameterConfiguration(**overrides).validate()


class TestForestEnsemble(unittest.TestCase):
    """Test case for the ForestEnsemble class"""

    @classmethod
    def setUpClass(cls):
        cls.training_set = make_training_set()
        cls.train, cls.test = cls.training_set.split(0.8)
        cls.config = HyperparameterConfiguration(tree_count=15, max_depth=6, min_samples_split=5,
                                                 min_samples_leaf=2, max_features='sqrt')
        cls.forest = ForestEnsemble(cls.config, random_state=42).fit(cls.train)

    def test_fit_sets_state(self):
        self.assertTrue(self.forest.is_trained)
        self.assertEqual(len(self.forest.trees), 15)
        self.assertEqual(self.forest.feature_names, ['a', 'b', 'c'])
        self.assertIsNotNone(self.forest.trained_at)

    def test_predict_is_deterministic(self):
        first = self.forest.predict(self.test)
        second = self.forest.predict(self.test)
        np.testing.assert_array_equal(first, second)

    def test_prediction_is_mean_of_trees(self):
        X = self.forest.schema.matrix(self.test.feature_vectors)
        expected = np.mean([tree.predict(X) for tree in self.forest.trees], axis=0)
        np.testing.assert_allclose(self.forest.predict(self.test), expected, rtol=1e-12)

    def test_predict_accepts_vectors_and_frames(self):
        vectors = self.test.feature_vectors[:5]
        frame = pd.DataFrame(vectors)[['c', 'a', 'b']]
        frame['player'] = 'someone'
        np.testing.assert_array_equal(self.forest.predict(vectors), self.forest.predict(frame))
        self.assertEqual(self.forest.predict_one(vectors[0]), self.forest.predict(vectors)[0])

    def test_predict_rejects_single_mapping(self):
        with self.assertRaises(FeatureSchemaError):
            self.forest.predict(self.test.feature_vectors[0])

    def test_predict_rejects_schema_mismatch(self):
        with self.assertRaises(FeatureSchemaError):
            self.forest.predict([{'a': 1.0, 'b': 2.0}])
        with self.assertRaises(FeatureSchemaError):
            self.forest.predict([{'a': 1.0, 'b': 2.0, 'c': 3.0, 'd': 4.0}])

    def test_predict_empty(self):
        self.assertEqual(self.forest.predict([]).shape, (0,))

    def test_feature_importance_is_split_frequency(self):
        importance = self.forest.get_feature_importance()
        self.assertEqual(set(importance), {'a', 'b', 'c'})

        for name in ('a', 'b', 'c'):
            splits = sum(tree.split_counts()[name] for tree in self.forest.trees)
            self.assertAlmostEqual(importance[name], splits / 15)

        values = list(importance.values())
        self.assertEqual(values, sorted(values, reverse=True))
        self.assertEqual(self.forest.get_top_features(1)[0][0], list(importance)[0])

    def test_evaluate_on_holdout(self):
        metrics = self.forest.evaluate(self.test)
        self.assertGreater(metrics.r2, 0.8)
        self.assertGreater(metrics.rmse, 0.0)

    def test_refit_raises(self):
        with self.assertRaises(ModelStateError):
            self.forest.fit(self.train)

    def test_clone_is_unfitted(self):
        clone = self.forest.clone()
        self.assertFalse(clone.is_trained)
        self.assertEqual(clone.config, self.config)
        self.assertEqual(clone.random_state, 42)

    def test_predict_before_fit_raises(self):
        with self.assertRaises(ModelStateError):
            ForestEnsemble(self.config).predict(self.test)

    def test_fit_empty_raises(self):
        with self.assertRaises(InsufficientDataError):
            ForestEnsemble(self.config).fit(TrainingSet([]))

    def test_fit_inconsistent_vectors_raises(self):
        samples = TrainingSet([({'a': 1.0, 'b': 2.0}, 1.0), ({'a': 1.0}, 2.0)])
        with self.assertRaises(FeatureSchemaError):
            ForestEnsemble(self.config).fit(samples)

    def test_explicit_feature_order(self):
        forest = ForestEnsemble(HyperparameterConfiguration(tree_count=3, max_depth=3), random_state=0)
        forest.fit(self.train, feature_names=['c', 'b', 'a'])
        self.assertEqual(forest.schema.names, ('c', 'b', 'a'))

    def test_seeded_fit_is_reproducible(self):
        first = ForestEnsemble(self.config, random_state=42).fit(self.train)
        np.testing.assert_array_equal(first.predict(self.test), self.forest.predict(self.test))

    def test_seeded_fit_independent_of_n_jobs(self):
        parallel = ForestEnsemble(self.config, random_state=42, n_jobs=2).fit(self.train)
        self.assertEqual([tree.to_dict() for tree in parallel.trees],
                         [tree.to_dict() for tree in self.forest.trees])

    def test_independent_forests_agree_within_tolerance(self):
        """Two differently seeded forests differ, but only slightly"""
        config = HyperparameterConfiguration(tree_count=50, max_depth=8, min_samples_split=5,
                                             min_samples_leaf=2, max_features='sqrt')
        first = ForestEnsemble(config, random_state=1).fit(self.train).predict(self.test)
        second = ForestEnsemble(config, random_state=2).fit(self.train).predict(self.test)

        differences = np.abs(first - second)
        self.assertGreater(differences.max(), 0.0)
        self.assertLess(differences.mean(), 2.0)

    def test_dict_round_trip(self):
        restored = ForestEnsemble.from_dict(self.forest.to_dict())
        self.assertTrue(restored.is_trained)
        self.assertEqual(restored.config, self.config)
        np.testing.assert_array_equal(restored.predict(self.test), self.forest.predict(self.test))
        self.assertEqual(restored.get_feature_importance(), self.forest.get_feature_importance())

    def test_from_dict_rejects_other_models(self):
        with self.assertRaises(ValueError):
            ForestEnsemble.from_dict({'model_type': 'gradient_boosting'})


if __name__ == '__main__':
    unittest.main()
