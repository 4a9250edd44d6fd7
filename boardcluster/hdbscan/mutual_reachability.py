"""Core distances and the mutual-reachability transform.

``core(p)`` is the distance from *p* to its k-th nearest other point and
``mreach(a, b) = max(core(a), core(b), d(a, b))``. Sparse points are pushed
away from everything, so single noisy links stop chaining clusters together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class MutualReachability:
    core_distances: np.ndarray  # shape (n,)
    matrix: np.ndarray  # shape (n, n), zero diagonal
    k: int  # neighbour rank actually used


class MutualReachabilityCalculator:
    """Reweight a distance matrix by local density."""

    def __init__(self, min_pts: int):
        if min_pts < 1:
            raise ValueError(f"min_pts must be >= 1, got {min_pts}")
        self.min_pts = min_pts

    def core_distances(self, distances: np.ndarray) -> tuple[np.ndarray, int]:
        """Distance of each point to its k-th nearest neighbour, excluding itself.

        With fewer than k other points the farthest one is used.
        """
        n = distances.shape[0]
        if n < 2:
            return np.zeros(n, dtype=np.float64), 0

        k = min(self.min_pts, n - 1)
        core = np.empty(n, dtype=np.float64)
        for i in range(n):
            others = np.delete(distances[i], i)
            core[i] = np.partition(others, k - 1)[k - 1]
        return core, k

    def compute(self, distances: np.ndarray) -> MutualReachability:
        n = distances.shape[0]
        if n == 0:
            return MutualReachability(
                core_distances=np.zeros(0, dtype=np.float64),
                matrix=np.zeros((0, 0), dtype=np.float64),
                k=0,
            )

        core, k = self.core_distances(distances)
        matrix = np.maximum(distances, np.maximum.outer(core, core))
        np.fill_diagonal(matrix, 0.0)

        logger.debug(
            f"Mutual reachability: n={n}, k={k}, "
            f"core distance range [{core.min():.3f}, {core.max():.3f}]"
        )
        return MutualReachability(core_distances=core, matrix=matrix, k=k)
