"""GLOSH: Global-Local Outlier Scores from Hierarchies.

A point's score compares the density level at which it left the tree with
the densest level reached anywhere inside the selected cluster holding it:
``score(p) = 1 − λ_p / λ_max(C_p)``. Points held by no selected cluster
score 1.0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from boardcluster.hdbscan.hierarchy import ClusterTree

logger = logging.getLogger(__name__)


@dataclass
class OutlierScore:
    point: int
    score: float
    cluster_node_id: int | None  # selected tree node nominally holding the point
    is_outlier: bool = False


class GLOSHOutlierProcessor:
    """Score points and pull weakly attached ones out of their clusters."""

    def __init__(self, threshold: float = 0.9):
        self.threshold = threshold

    def score(self, tree: ClusterTree, selected: list[int], n_points: int) -> list[OutlierScore]:
        if n_points == 0:
            return []

        owner: dict[int, int] = {}
        for node_id in selected:
            for point in tree.nodes[node_id].points:
                owner[point] = node_id

        exits = tree.point_exits()
        max_lambdas = tree.max_lambdas()

        scores: list[OutlierScore] = []
        for point in range(n_points):
            cluster_node = owner.get(point)
            if cluster_node is None or point not in exits:
                scores.append(OutlierScore(point=point, score=1.0, cluster_node_id=None, is_outlier=True))
                continue

            _, lam = exits[point]
            lam_max = max_lambdas[cluster_node]
            value = 1.0 - lam / lam_max if lam_max > 0 else 0.0
            value = min(1.0, max(0.0, value))
            scores.append(
                OutlierScore(
                    point=point,
                    score=value,
                    cluster_node_id=cluster_node,
                    is_outlier=self.is_outlier(value),
                )
            )

        flagged = sum(1 for s in scores if s.is_outlier)
        logger.debug(f"GLOSH: {flagged}/{n_points} points above threshold {self.threshold}")
        return scores

    def is_outlier(self, score: float) -> bool:
        """Scores above the threshold, and a full 1.0 always, mark an outlier."""
        return score > self.threshold or score >= 1.0
