#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Tests for the regression tree builder
"""

import os
import sys
import unittest
from collections import defaultdict

import numpy as np

# Add project root to path if needed for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from stat_forest.models.decision_tree import (
    DecisionTree,
    DecisionTreeBuilder,
    InternalNode,
    Leaf,
    candidate_thresholds
)


def _leaf_for_row(root, row):
    node = root
    while isinstance(node, InternalNode):
        node = node.left if row[node.feature_index] <= node.threshold else node.right
    return node


class TestCandidateThresholds(unittest.TestCase):
    """Test case for threshold candidate generation"""

    def test_midpoints_of_unique_values(self):
        thresholds = candidate_thresholds(np.array([3.0, 1.0, 2.0, 2.0]))
        np.testing.assert_array_equal(thresholds, [1.5, 2.5])

    def test_cap_on_many_unique_values(self):
        """100 unique values yield exactly 20 evenly strided candidates"""
        thresholds = candidate_thresholds(np.arange(100, dtype=float), max_thresholds=20)
        self.assertEqual(len(thresholds), 20)
        self.assertEqual(thresholds[0], 0.5)
        self.assertEqual(thresholds[1], 5.5)

    def test_constant_feature_has_no_candidates(self):
        self.assertEqual(len(candidate_thresholds(np.full(10, 4.0))), 0)


class TestDecisionTreeBuilder(unittest.TestCase):
    """Test case for the DecisionTreeBuilder class"""

    def setUp(self):
        rng = np.random.RandomState(42)
        self.X = rng.uniform(0, 10, size=(150, 4))
        self.y = 3 * self.X[:, 0] - 2 * self.X[:, 2] + rng.normal(0, 0.5, size=150)
        self.feature_names = ['a', 'b', 'c', 'd']

    def _build(self, max_depth=6, min_samples_split=5, min_samples_leaf=3, random_state=0, **kwargs):
        builder = DecisionTreeBuilder(
            max_depth=max_depth,
            min_samples_split=min_samples_split,
            min_samples_leaf=min_samples_leaf,
            random_state=random_state,
            **kwargs
        )
        return DecisionTree(builder.build(self.X, self.y, self.feature_names), self.feature_names)

    def test_simple_split(self):
        """A clean gap in one feature is found and leaves hold the side means"""
        X = np.array([[1.0], [2.0], [3.0], [10.0], [11.0], [12.0]])
        y = np.array([1.0, 1.0, 1.0, 5.0, 5.0, 5.0])
        builder = DecisionTreeBuilder(max_depth=3, min_samples_split=2, min_samples_leaf=1, random_state=0)
        root = builder.build(X, y, ['minutes'])

        self.assertIsInstance(root, InternalNode)
        self.assertEqual(root.feature, 'minutes')
        self.assertEqual(root.threshold, 6.5)
        self.assertEqual(root.left, Leaf(prediction=1.0, n_samples=3))
        self.assertEqual(root.right, Leaf(prediction=5.0, n_samples=3))

    def test_leaf_prediction_is_partition_mean(self):
        """Every leaf predicts exactly the mean target of the samples routed to it"""
        tree = self._build()
        routed = defaultdict(list)
        leaves = {}
        for row, target in zip(self.X, self.y):
            leaf = _leaf_for_row(tree.root, row)
            routed[id(leaf)].append(target)
            leaves[id(leaf)] = leaf

        for key, leaf in leaves.items():
            self.assertEqual(leaf.prediction, float(np.mean(np.array(routed[key]))))
            self.assertEqual(leaf.n_samples, len(routed[key]))

    def test_children_respect_min_samples_leaf(self):
        tree = self._build(min_samples_leaf=7)
        for node, _ in tree.iter_nodes():
            if isinstance(node, InternalNode):
                self.assertGreaterEqual(node.left.n_samples, 7)
                self.assertGreaterEqual(node.right.n_samples, 7)
                self.assertEqual(node.left.n_samples + node.right.n_samples, node.n_samples)

    def test_depth_bounded_by_max_depth(self):
        for max_depth in (1, 2, 4, 8):
            with self.subTest(max_depth=max_depth):
                tree = self._build(max_depth=max_depth, min_samples_split=2, min_samples_leaf=1)
                self.assertLessEqual(tree.depth, max_depth)

    def test_max_depth_zero_gives_single_leaf(self):
        tree = self._build(max_depth=0)
        self.assertIsInstance(tree.root, Leaf)
        self.assertEqual(tree.root.prediction, float(np.mean(self.y)))

    def test_constant_targets_give_leaf(self):
        builder = DecisionTreeBuilder(max_depth=5, min_samples_split=2, min_samples_leaf=1)
        root = builder.build(self.X, np.full(150, 7.0), self.feature_names)
        self.assertEqual(root, Leaf(prediction=7.0, n_samples=150))

    def test_too_few_samples_give_leaf(self):
        builder = DecisionTreeBuilder(max_depth=5, min_samples_split=10, min_samples_leaf=1)
        root = builder.build(self.X[:9], self.y[:9], self.feature_names)
        self.assertIsInstance(root, Leaf)

    def test_no_admissible_split_gives_leaf(self):
        """A min_samples_leaf larger than half the partition rules out every split"""
        builder = DecisionTreeBuilder(max_depth=5, min_samples_split=2, min_samples_leaf=80)
        root = builder.build(self.X, self.y, self.feature_names)
        self.assertIsInstance(root, Leaf)

    def test_constant_features_give_leaf(self):
        X = np.ones((20, 2))
        y = np.arange(20, dtype=float)
        builder = DecisionTreeBuilder(max_depth=5, min_samples_split=2, min_samples_leaf=1)
        self.assertIsInstance(builder.build(X, y, ['a', 'b']), Leaf)

    def test_seeded_builds_are_identical(self):
        first = self._build(random_state=11)
        second = self._build(random_state=11)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_shape_mismatch_raises(self):
        builder = DecisionTreeBuilder(max_depth=3, min_samples_split=2, min_samples_leaf=1)
        with self.assertRaises(ValueError):
            builder.build(self.X, self.y[:-1], self.feature_names)
        with self.assertRaises(ValueError):
            builder.build(self.X, self.y, ['a', 'b'])


class TestDecisionTree(unittest.TestCase):
    """Test case for prediction and serialization of grown trees"""

    def test_left_routing_is_inclusive(self):
        root = InternalNode('x', 0, 2.0, Leaf(1.0, 1), Leaf(9.0, 1), 2)
        tree = DecisionTree(root, ['x'])
        self.assertEqual(tree.predict_row([2.0]), 1.0)
        self.assertEqual(tree.predict_row([2.0001]), 9.0)

    def test_deep_tree_does_not_recurse(self):
        """A chain deeper than the recursion limit predicts and serializes"""
        depth = sys.getrecursionlimit() + 500
        node = Leaf(float(depth), 1)
        for level in range(depth - 1, -1, -1):
            node = InternalNode('x', 0, float(level), Leaf(float(level), 1), node, 2)
        tree = DecisionTree(node, ['x'])

        self.assertEqual(tree.depth, depth)
        self.assertEqual(tree.predict_row([depth + 10.0]), float(depth))
        restored = DecisionTree.from_dict(tree.to_dict(), ['x'])
        self.assertEqual(restored.predict_row([3.5]), 4.0)

    def test_dict_round_trip_predicts_identically(self):
        rng = np.random.RandomState(3)
        X = rng.uniform(0, 1, size=(60, 3))
        y = X[:, 0] + X[:, 1] ** 2
        builder = DecisionTreeBuilder(max_depth=5, min_samples_split=4, min_samples_leaf=2, random_state=1)
        tree = DecisionTree(builder.build(X, y, ['p', 'q', 'r']), ['p', 'q', 'r'])

        restored = DecisionTree.from_dict(tree.to_dict(), ['p', 'q', 'r'])
        np.testing.assert_array_equal(tree.predict(X), restored.predict(X))

    def test_split_counts(self):
        root = InternalNode('a', 0, 1.0,
                            InternalNode('b', 1, 2.0, Leaf(0.0, 1), Leaf(1.0, 1), 2),
                            InternalNode('a', 0, 3.0, Leaf(2.0, 1), Leaf(3.0, 1), 2),
                            4)
        tree = DecisionTree(root, ['a', 'b', 'c'])
        self.assertEqual(tree.split_counts(), {'a': 2, 'b': 1, 'c': 0})
        self.assertEqual(tree.n_leaves, 4)


if __name__ == '__main__':
    unittest.main()
