"""
Isolation forest anomaly detection.

Anomalies are isolated by fewer random splits than normal points. Each tree
partitions a bootstrap sample with random (feature, split) pairs; the score
of a point is derived from its average path length across all trees:

    score = 2 ** (-avg_path_length / c(sample_size))

where c(n) is the average path length of an unsuccessful search in a binary
search tree of n points. Scores close to 1 are anomalous, well below 0.5 normal.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

import numpy as np
import structlog

from .base import AnalyticsModel

logger = structlog.get_logger(__name__)

EULER_GAMMA = 0.5772156649


@dataclass(frozen=True)
class Leaf:
    size: int


@dataclass(frozen=True)
class Internal:
    feature_index: int
    split_value: float
    left: "Node"
    right: "Node"


Node = Union[Leaf, Internal]


def average_path_length(n: int) -> float:
    """c(n): expected depth correction for a leaf holding n points"""
    if n <= 1:
        return 0.0
    return 2 * (math.log(n - 1) + EULER_GAMMA) - 2 * (n - 1) / n


class IsolationForest(AnalyticsModel):
    """Ensemble of randomized isolation trees"""

    def __init__(
        self,
        num_trees: int = 100,
        sample_size: int = 256,
        contamination: float = 0.1,
        seed: int | None = None,
    ):
        super().__init__()
        if num_trees < 1 or sample_size < 1:
            raise ValueError("num_trees and sample_size must be positive")

        self.num_trees = num_trees
        self.sample_size = sample_size
        self.contamination = contamination
        self.max_depth = math.ceil(math.log2(sample_size)) if sample_size > 1 else 0
        self.rng = np.random.default_rng(seed)
        self.trees: list[Node] = []

    @property
    def name(self) -> str:
        return "isolation_forest"

    def get_config(self) -> dict[str, Any]:
        return {
            "num_trees": self.num_trees,
            "sample_size": self.sample_size,
            "contamination": self.contamination,
            "max_depth": self.max_depth,
        }

    def _build_tree(self, data: np.ndarray, depth: int) -> Node:
        if len(data) <= 1 or depth >= self.max_depth:
            return Leaf(size=len(data))

        feature_index = int(self.rng.integers(data.shape[1]))
        column = data[:, feature_index]
        lo, hi = float(column.min()), float(column.max())
        split_value = float(self.rng.uniform(lo, hi)) if hi > lo else lo

        left_mask = column < split_value
        if left_mask.all() or not left_mask.any():
            return Leaf(size=len(data))

        return Internal(
            feature_index=feature_index,
            split_value=split_value,
            left=self._build_tree(data[left_mask], depth + 1),
            right=self._build_tree(data[~left_mask], depth + 1),
        )

    def fit(self, dataset: Sequence[Sequence[float]]) -> None:
        """Grow num_trees trees on bootstrap samples of dataset

        Raises:
            ValueError: If the dataset is empty or not a 2-D numeric matrix
        """
        data = np.asarray(dataset, dtype=float)
        if data.ndim != 2 or data.shape[0] == 0 or data.shape[1] == 0:
            raise ValueError("IsolationForest.fit needs a non-empty 2-D dataset")

        n_samples = min(self.sample_size, data.shape[0])
        trees = []
        for _ in range(self.num_trees):
            indices = self.rng.integers(0, data.shape[0], size=n_samples)
            trees.append(self._build_tree(data[indices], depth=0))

        with self._lock.write():
            self.trees = trees
            self.trained = True

        logger.info(
            "Isolation forest trained",
            trees=self.num_trees,
            samples=n_samples,
            features=data.shape[1],
        )

    @staticmethod
    def path_length(point: Sequence[float], tree: Node) -> float:
        """Depth at which point lands in tree, plus the leaf correction c(size)"""
        depth = 0
        node = tree
        while isinstance(node, Internal):
            if point[node.feature_index] < node.split_value:
                node = node.left
            else:
                node = node.right
            depth += 1
        return depth + average_path_length(node.size)

    def predict(self, vector: Sequence[float]) -> float:
        """Anomaly score in (0, 1]; 0 when the model is unusable"""
        with self._lock.read():
            if not self.trained or not self.trees:
                return 0.0
            try:
                point = [float(v) for v in vector]
                avg = sum(self.path_length(point, tree) for tree in self.trees) / len(self.trees)
                score = 2 ** (-avg / average_path_length(self.sample_size))
            except Exception as e:
                logger.debug("Isolation forest scoring failed", error=str(e))
                return 0.0

        return score if math.isfinite(score) else 0.0

    def predict_batch(self, vectors: Any) -> list[float]:
        """Element-wise predict; non-sequence input yields []"""
        if not isinstance(vectors, (list, tuple, np.ndarray)):
            return []
        return [self.predict(vector) for vector in vectors]
