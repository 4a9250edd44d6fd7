"""Clustering adapter: classic DBSCAN over the board distance matrix.

Parameters are derived from the board rather than set directly:
``eps = clamp(1 − similarity_threshold, 0.2, 0.8)`` and
``min_pts = clamp(min_cluster_size, 2, n // 8)`` where the lower bound wins.
"""

from __future__ import annotations

import logging
from collections import deque

import numpy as np

from boardcluster.domain.models import Card, ClusteringAlgorithm, ClusteringConfig, NetworkNode
from boardcluster.ports.clustering import ClusterPartition, ClusteringPort
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.cluster_builder import apply_size_bounds, build_cluster
from boardcluster.services.distance import SimilarityMatrix

logger = logging.getLogger(__name__)

UNCLASSIFIED = -1
NOISE = -2

EPS_MIN = 0.2
EPS_MAX = 0.8


def derive_parameters(n: int, config: ClusteringConfig) -> tuple[float, int]:
    """Return ``(eps, min_pts)`` for a board of *n* nodes."""
    eps = min(EPS_MAX, max(EPS_MIN, 1.0 - config.similarity_threshold))
    min_pts = max(2, min(config.min_cluster_size, n // 8))
    return eps, min_pts


def dbscan_labels(distances: np.ndarray, eps: float, min_pts: int) -> np.ndarray:
    """Label every point with a cluster index or NOISE.

    Neighbourhoods exclude the point itself; a point is core when it has at
    least *min_pts* neighbours within *eps*. Noise reached from a core point
    is absorbed as a border point but never expanded.
    """
    n = distances.shape[0]
    labels = np.full(n, UNCLASSIFIED, dtype=np.int64)
    neighbours = [
        [int(j) for j in np.flatnonzero(distances[i] <= eps) if j != i]
        for i in range(n)
    ]

    cluster_id = 0
    for i in range(n):
        if labels[i] != UNCLASSIFIED:
            continue
        if len(neighbours[i]) < min_pts:
            labels[i] = NOISE
            continue

        labels[i] = cluster_id
        frontier = deque(neighbours[i])
        while frontier:
            j = frontier.popleft()
            if labels[j] == NOISE:
                labels[j] = cluster_id
            if labels[j] != UNCLASSIFIED:
                continue
            labels[j] = cluster_id
            if len(neighbours[j]) >= min_pts:
                frontier.extend(neighbours[j])
        cluster_id += 1

    return labels


class DBSCANClusterer(ClusteringPort):
    """Density clustering with adaptive eps / min_pts."""

    algorithm = ClusteringAlgorithm.DBSCAN

    def __init__(self, observer: ClusteringObserver | None = None):
        self._observer = observer

    def cluster(
        self,
        nodes: list[NetworkNode],
        matrix: SimilarityMatrix,
        config: ClusteringConfig,
        *,
        cards: dict[str, Card] | None = None,
    ) -> ClusterPartition:
        if not nodes:
            return ClusterPartition()
        if len(nodes) == 1:
            return ClusterPartition.all_outliers(nodes)

        cards = cards or {}
        eps, min_pts = derive_parameters(len(nodes), config)
        logger.info(f"DBSCAN: {len(nodes)} nodes, eps={eps:.2f}, min_pts={min_pts}")

        labels = dbscan_labels(matrix.distances(), eps, min_pts)
        node_ids = matrix.node_ids

        groups: list[list[str]] = []
        for label in sorted(set(int(x) for x in labels if x >= 0)):
            groups.append([node_ids[i] for i in np.flatnonzero(labels == label)])
        noise = {node_ids[i] for i in np.flatnonzero(labels == NOISE)}

        kept, demoted = apply_size_bounds(groups, config.min_cluster_size, config.max_cluster_size)
        outlier_set = noise | set(demoted)
        outliers = [nid for nid in node_ids if nid in outlier_set]

        nodes_by_id = {n.id: n for n in nodes}
        clusters = [
            build_cluster(
                f"dbscan-{k}",
                group,
                nodes_by_id,
                cards,
                matrix,
                metadata={"eps": eps, "min_pts": min_pts},
            )
            for k, group in enumerate(kept)
        ]

        if self._observer is not None:
            self._observer.on_event(
                "dbscan.labels",
                eps=eps,
                min_pts=min_pts,
                raw_clusters=len(groups),
                noise=len(noise),
                demoted=len(demoted),
            )
        logger.info(f"DBSCAN: {len(clusters)} clusters, {len(outliers)} outliers")

        return ClusterPartition(
            clusters=clusters,
            outliers=outliers,
            diagnostics={"eps": eps, "min_pts": min_pts},
        )
