# -*- coding: utf-8 -*-
"""
Regression Decision Tree

This module grows a single regression tree by variance-reduction splitting.

At every node a random subset of features is drawn (this per-node randomness
is what decorrelates the trees of a forest). For each drawn feature, candidate
thresholds are the midpoints between consecutive unique values, thinned to at
most MAX_THRESHOLD_CANDIDATES evenly-strided candidates. The candidate with the
smallest summed within-child squared error wins, subject to both children
holding at least min_samples_leaf samples.

Growth and prediction both use explicit stacks, so tree depth is bounded only
by max_depth and never by the interpreter's recursion limit. Degenerate
partitions (too few samples, constant targets, no admissible split) always
become leaves; they never raise.
"""

import logging
import math
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.utils import check_random_state

logger = logging.getLogger(__name__)

# Thresholds evaluated per feature per node. Trades split optimality for speed.
MAX_THRESHOLD_CANDIDATES = 20


class Leaf(NamedTuple):
    """Terminal node holding the mean target of its partition"""
    prediction: float
    n_samples: int


class InternalNode(NamedTuple):
    """Split node: samples with feature <= threshold go left, the rest go right"""
    feature: str
    feature_index: int
    threshold: float
    left: 'Node'
    right: 'Node'
    n_samples: int


Node = Union[Leaf, InternalNode]


def candidate_thresholds(values: np.ndarray, max_thresholds: int = MAX_THRESHOLD_CANDIDATES) -> np.ndarray:
    """
    Midpoints between consecutive unique values, capped to an evenly-strided subset

    Args:
        values: Feature values of the current partition
        max_thresholds: Upper bound on candidates

    Returns:
        Array of candidate thresholds in ascending order (empty if the feature is constant)
    """
    unique_values = np.unique(values)
    n_unique = unique_values.size
    if n_unique < 2:
        return np.empty(0, dtype=float)

    n_candidates = min(max_thresholds, n_unique - 1)
    step = max(1, n_unique // n_candidates)
    positions = np.arange(0, n_unique - 1, step)
    return (unique_values[positions] + unique_values[positions + 1]) / 2.0


def _sum_squared_error(y: np.ndarray) -> float:
    return float(np.sum((y - np.mean(y)) ** 2))


class DecisionTreeBuilder:
    """
    Grows one regression tree from a sample set
    """

    def __init__(self, max_depth: int, min_samples_split: int, min_samples_leaf: int,
                 feature_subset_size: Optional[int] = None,
                 max_thresholds: int = MAX_THRESHOLD_CANDIDATES,
                 random_state: Any = None):
        """
        Initialize the builder

        Args:
            max_depth: Nodes at this depth always become leaves
            min_samples_split: Partitions smaller than this become leaves
            min_samples_leaf: Minimum samples on each side of a split
            feature_subset_size: Features drawn per node (default: ceil(sqrt(n_features)))
            max_thresholds: Candidate thresholds evaluated per feature
            random_state: Seed or numpy RandomState for the feature draws
        """
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.feature_subset_size = feature_subset_size
        self.max_thresholds = max_thresholds
        self.random_state = check_random_state(random_state)

    def build(self, X: np.ndarray, y: np.ndarray, feature_names: Sequence[str]) -> Node:
        """
        Grow a tree on (X, y)

        Args:
            X: Feature matrix of shape (n_samples, n_features), columns in schema order
            y: Target vector of shape (n_samples,)
            feature_names: Names of the columns of X

        Returns:
            Root node of the grown tree
        """
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float)
        if X.ndim != 2 or X.shape[0] != y.shape[0] or X.shape[1] != len(feature_names):
            raise ValueError(
                f"Inconsistent shapes: X {X.shape}, y {y.shape}, {len(feature_names)} feature names"
            )
        if y.size == 0:
            raise ValueError("Cannot grow a tree on an empty sample set")

        n_features = X.shape[1]
        subset_size = self.feature_subset_size or int(math.ceil(math.sqrt(n_features)))
        subset_size = max(1, min(subset_size, n_features))

        # Pre-order records: ('leaf', prediction, n) or ('split', feature_index, threshold, n)
        records: List[Tuple] = []
        children: Dict[int, List[int]] = {}
        stack = [(np.arange(y.size), 0, -1, 0)]

        while stack:
            indices, depth, parent, side = stack.pop()
            node_id = len(records)
            if parent >= 0:
                children[parent][side] = node_id

            node_y = y[indices]
            split = None
            if not self._should_stop(node_y, depth):
                split = self._find_best_split(X[indices], node_y, subset_size)

            if split is None:
                records.append(('leaf', float(np.mean(node_y)), int(indices.size)))
                continue

            feature_index, threshold = split
            records.append(('split', feature_index, threshold, int(indices.size)))
            children[node_id] = [-1, -1]

            goes_left = X[indices, feature_index] <= threshold
            # Right is pushed first so the left subtree is numbered first.
            stack.append((indices[~goes_left], depth + 1, node_id, 1))
            stack.append((indices[goes_left], depth + 1, node_id, 0))

        # Children always carry larger ids than their parent, so a reverse sweep
        # assembles the immutable nodes bottom-up.
        nodes: List[Optional[Node]] = [None] * len(records)
        for node_id in range(len(records) - 1, -1, -1):
            record = records[node_id]
            if record[0] == 'leaf':
                nodes[node_id] = Leaf(prediction=record[1], n_samples=record[2])
            else:
                _, feature_index, threshold, n_samples = record
                left_id, right_id = children[node_id]
                nodes[node_id] = InternalNode(
                    feature=feature_names[feature_index],
                    feature_index=feature_index,
                    threshold=threshold,
                    left=nodes[left_id],
                    right=nodes[right_id],
                    n_samples=n_samples,
                )

        return nodes[0]

    def _should_stop(self, y: np.ndarray, depth: int) -> bool:
        if depth >= self.max_depth:
            return True
        if y.size < self.min_samples_split:
            return True
        return bool(np.all(y == y[0]))

    def _find_best_split(self, X: np.ndarray, y: np.ndarray,
                         subset_size: int) -> Optional[Tuple[int, float]]:
        """
        Search the drawn feature subset for the lowest weighted-variance split

        Returns:
            (feature_index, threshold) of the best admissible split, or None
        """
        features = self.random_state.choice(X.shape[1], size=subset_size, replace=False)

        best_score = math.inf
        best_split = None

        for feature_index in features:
            column = X[:, feature_index]
            for threshold in candidate_thresholds(column, self.max_thresholds):
                goes_left = column <= threshold
                n_left = int(np.count_nonzero(goes_left))
                n_right = y.size - n_left
                if n_left < self.min_samples_leaf or n_right < self.min_samples_leaf:
                    continue

                score = _sum_squared_error(y[goes_left]) + _sum_squared_error(y[~goes_left])
                if score < best_score:
                    best_score = score
                    best_split = (int(feature_index), float(threshold))

        return best_split


class DecisionTree:
    """
    A grown regression tree bound to the feature names it was trained on
    """

    def __init__(self, root: Node, feature_names: Sequence[str]):
        self.root = root
        self.feature_names = tuple(feature_names)

    def predict_row(self, row: Sequence[float]) -> float:
        """Route one positional row to its leaf"""
        node = self.root
        while isinstance(node, InternalNode):
            node = node.left if row[node.feature_index] <= node.threshold else node.right
        return node.prediction

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        return np.array([self.predict_row(row) for row in X], dtype=float)

    def iter_nodes(self) -> Iterator[Tuple[Node, int]]:
        """Yield (node, depth) pairs in pre-order"""
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            if isinstance(node, InternalNode):
                stack.append((node.right, depth + 1))
                stack.append((node.left, depth + 1))

    @property
    def depth(self) -> int:
        return max(depth for _, depth in self.iter_nodes())

    @property
    def n_leaves(self) -> int:
        return sum(1 for node, _ in self.iter_nodes() if isinstance(node, Leaf))

    def split_counts(self) -> Dict[str, int]:
        """Number of internal nodes splitting on each feature"""
        counts = {name: 0 for name in self.feature_names}
        for node, _ in self.iter_nodes():
            if isinstance(node, InternalNode):
                counts[node.feature] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {'root': node_to_dict(self.root)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], feature_names: Sequence[str]) -> 'DecisionTree':
        return cls(node_from_dict(data['root'], feature_names), feature_names)


def node_to_dict(root: Node) -> Dict[str, Any]:
    """
    Serialize a node tree into nested split-rule dicts

    Leaves become {"leaf": true, "prediction", "n_samples"}; internal nodes become
    {"leaf": false, "feature", "threshold", "n_samples", "left", "right"}.
    """
    converted: Dict[int, Dict[str, Any]] = {}
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if isinstance(node, Leaf):
            converted[id(node)] = {
                'leaf': True,
                'prediction': node.prediction,
                'n_samples': node.n_samples,
            }
        elif expanded:
            converted[id(node)] = {
                'leaf': False,
                'feature': node.feature,
                'threshold': node.threshold,
                'n_samples': node.n_samples,
                'left': converted.pop(id(node.left)),
                'right': converted.pop(id(node.right)),
            }
        else:
            stack.append((node, True))
            stack.append((node.right, False))
            stack.append((node.left, False))
    return converted[id(root)]


def node_from_dict(data: Dict[str, Any], feature_names: Sequence[str]) -> Node:
    """Rebuild a node tree from node_to_dict output"""
    index = {name: i for i, name in enumerate(feature_names)}
    built: Dict[int, Node] = {}
    stack = [(data, False)]
    while stack:
        item, expanded = stack.pop()
        if item['leaf']:
            built[id(item)] = Leaf(prediction=float(item['prediction']), n_samples=int(item['n_samples']))
        elif expanded:
            feature = item['feature']
            if feature not in index:
                raise ValueError(f"Serialized tree splits on unknown feature '{feature}'")
            built[id(item)] = InternalNode(
                feature=feature,
                feature_index=index[feature],
                threshold=float(item['threshold']),
                left=built.pop(id(item['left'])),
                right=built.pop(id(item['right'])),
                n_samples=int(item['n_samples']),
            )
        else:
            stack.append((item, True))
            stack.append((item['right'], False))
            stack.append((item['left'], False))
    return built[id(data)]
