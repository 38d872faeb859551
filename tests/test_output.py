#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tests for model persistence, console display and charts
"""

import io
import json
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stdout

import numpy as np
import pandas as pd

# Add project root to path if needed for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from stat_forest.data.training_set import TrainingSample, TrainingSet
from stat_forest.models.base_model import ModelStateError
from stat_forest.models.random_forest import ForestEnsemble, HyperparameterConfiguration
from stat_forest.output.display import display_feature_importance, display_leaderboard
from stat_forest.output.persistence import (
    MODEL_FORMAT_VERSION,
    build_model_summary,
    load_model,
    load_model_pickle,
    save_leaderboard,
    save_model,
    save_model_pickle,
    save_model_summary
)
from stat_forest.presentation.charts import plot_feature_importance, plot_leaderboard
from stat_forest.training.hyperparameter_tuning import (
    TUNING_FAILED,
    ConfigurationFailure,
    HyperparameterTuner,
    TuningError,
    TuningResult
)


def make_training_set(n_samples=120, seed=4):
    rng = np.random.RandomState(seed)
    return TrainingSet(
        TrainingSample({'minutes': m, 'usage': u, 'rest_days': r}, 0.6 * m + 20 * u)
        for m, u, r in zip(rng.uniform(10, 40, n_samples), rng.uniform(0.1, 0.35, n_samples),
                           rng.randint(0, 4, n_samples))
    )


class OutputTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.training_set = make_training_set()
        grid = {'tree_count': [5], 'max_depth': [3, 5]}
        cls.result = HyperparameterTuner(random_state=3).tune(cls.training_set, param_grid=grid)
        config = HyperparameterConfiguration(tree_count=2, max_depth=2)
        cls.failed_result = TuningResult(
            TUNING_FAILED, [], [ConfigurationFailure(0, config, "RuntimeError: boom")], None,
            ['minutes', 'usage', 'rest_days'], 96, 24
        )

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.output_dir = self.temp_dir.name

    def tearDown(self):
        self.temp_dir.cleanup()


class TestModelPersistence(OutputTestCase):
    """Test case for saving and loading forests"""

    def test_json_round_trip(self):
        model = self.result.best_model
        path = save_model(model, os.path.join(self.output_dir, 'models', 'forest.json'))

        with open(path) as f:
            payload = json.load(f)
        self.assertEqual(payload['format_version'], MODEL_FORMAT_VERSION)
        self.assertEqual(payload['model_type'], 'random_forest')
        self.assertEqual(payload['feature_names'], ['minutes', 'usage', 'rest_days'])
        self.assertEqual(len(payload['trees']), 5)

        restored = load_model(path)
        np.testing.assert_array_equal(restored.predict(self.training_set), model.predict(self.training_set))
        self.assertEqual(restored.trained_at, model.trained_at)

    def test_unknown_format_version_rejected(self):
        path = os.path.join(self.output_dir, 'forest.json')
        save_model(self.result.best_model, path)
        with open(path) as f:
            payload = json.load(f)
        payload['format_version'] = MODEL_FORMAT_VERSION + 1
        with open(path, 'w') as f:
            json.dump(payload, f)

        with self.assertRaises(ValueError):
            load_model(path)

    def test_unfitted_model_not_saved(self):
        with self.assertRaises(ModelStateError):
            save_model(ForestEnsemble(), os.path.join(self.output_dir, 'forest.json'))

    def test_pickle_round_trip(self):
        model = self.result.best_model
        path = save_model_pickle(model, os.path.join(self.output_dir, 'forest.pkl'))
        restored = load_model_pickle(path)
        np.testing.assert_array_equal(restored.predict(self.training_set), model.predict(self.training_set))


class TestModelSummary(OutputTestCase):
    """Test case for the saved model summary and leaderboard"""

    def test_summary_fields(self):
        summary = build_model_summary(self.result, training_set_size=len(self.training_set), top_features=2)
        best = self.result.leaderboard[0]

        self.assertEqual(summary['modelType'], 'random_forest')
        self.assertEqual(summary['hyperparameters'], best.config.to_dict())
        self.assertEqual(summary['performance'], {
            'rSquared': best.test_metrics.r2,
            'rmse': best.test_metrics.rmse,
            'mae': best.test_metrics.mae,
        })
        self.assertEqual(summary['trainPerformance']['rSquared'], best.train_metrics.r2)
        self.assertEqual(summary['features'], ['minutes', 'usage', 'rest_days'])
        self.assertEqual(len(summary['featureImportance']), 2)
        self.assertEqual(summary['trainingData'], {'total': 120, 'train': 96, 'test': 24})
        self.assertIsInstance(summary['trainedAt'], str)

    def test_summary_of_failed_run_raises(self):
        with self.assertRaises(TuningError):
            build_model_summary(self.failed_result)

    def test_save_summary(self):
        summary = build_model_summary(self.result)
        path = save_model_summary(summary, self.output_dir)
        self.assertTrue(path.endswith('.json'))
        with open(path) as f:
            self.assertEqual(json.load(f)['modelType'], 'random_forest')

    def test_save_leaderboard(self):
        path = save_leaderboard(self.result, self.output_dir)
        frame = pd.read_csv(path)
        self.assertEqual(len(frame), 2)
        self.assertEqual(list(frame['rank']), [1, 2])
        self.assertIn('test_r2', frame.columns)


class TestDisplay(OutputTestCase):
    """Test case for console output"""

    def test_display_leaderboard(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            display_leaderboard(self.result, top_n=5)
        output = buffer.getvalue()
        self.assertIn("HYPERPARAMETER TUNING | SUCCESS", output)
        self.assertIn("Top 2 parameter combinations", output)

    def test_display_failed_leaderboard(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            display_leaderboard(self.failed_result)
        self.assertIn("RuntimeError: boom", buffer.getvalue())

    def test_display_feature_importance(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            display_feature_importance({'minutes': 3.0, 'usage': 1.5, 'rest_days': 0.0}, top_n=2)
        output = buffer.getvalue()
        self.assertIn("minutes", output)
        self.assertNotIn("rest_days", output)


class TestCharts(OutputTestCase):
    """Test case for chart rendering"""

    def test_plot_feature_importance(self):
        path = os.path.join(self.output_dir, 'plots', 'importance.png')
        plot_feature_importance(self.result.best_model.get_feature_importance(), path)
        self.assertTrue(os.path.getsize(path) > 0)

    def test_plot_leaderboard(self):
        path = os.path.join(self.output_dir, 'leaderboard.png')
        plot_leaderboard(self.result, path)
        self.assertTrue(os.path.getsize(path) > 0)

    def test_plot_failed_leaderboard_raises(self):
        with self.assertRaises(TuningError):
            plot_leaderboard(self.failed_result, os.path.join(self.output_dir, 'leaderboard.png'))


if __name__ == '__main__':
    unittest.main()
