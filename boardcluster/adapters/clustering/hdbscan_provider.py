"""Clustering adapter: HDBSCAN behind the shared ClusteringPort."""

from __future__ import annotations

import logging
import time

from boardcluster.domain.models import Card, ClusteringAlgorithm, ClusteringConfig, NetworkNode
from boardcluster.hdbscan.clusterer import HDBSCANClusterer, HDBSCANResult
from boardcluster.ports.clustering import ClusterPartition, ClusteringPort
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.cluster_builder import build_cluster
from boardcluster.services.distance import SimilarityMatrix

logger = logging.getLogger(__name__)


class HDBSCANProvider(ClusteringPort):
    """Convert HDBSCAN results into SmartClusters and forward diagnostics."""

    algorithm = ClusteringAlgorithm.HDBSCAN

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

        t = time.perf_counter()
        distances = matrix.distances()
        distance_ms = (time.perf_counter() - t) * 1000.0

        result = HDBSCANClusterer.from_config(config, observer=self._observer).fit(
            matrix.node_ids, distances
        )
        result.processing_metrics.distance_ms = distance_ms
        result.processing_metrics.total_ms += distance_ms

        return self.to_partition(result, nodes, matrix, cards or {})

    @staticmethod
    def to_partition(
        result: HDBSCANResult,
        nodes: list[NetworkNode],
        matrix: SimilarityMatrix,
        cards: dict[str, Card],
    ) -> ClusterPartition:
        nodes_by_id = {n.id: n for n in nodes}
        clusters = [
            build_cluster(
                c.id,
                c.node_ids,
                nodes_by_id,
                cards,
                matrix,
                stability=c.stability,
                membership_strength=dict(c.membership),
                metadata={
                    "tree_node_id": c.tree_node_id,
                    "birth_lambda": c.birth_lambda,
                    "death_lambda": c.death_lambda,
                    "persistence": c.persistence,
                },
            )
            for c in result.clusters
        ]

        tree = result.tree
        diagnostics = {
            "min_pts": result.min_pts,
            "processing_metrics": result.processing_metrics.to_dict(),
            "statistics": result.statistics(),
            "outlier_scores": dict(result.outlier_scores),
            "stability_scores": {
                str(node.id): {
                    "stability": node.stability,
                    "birth_lambda": node.birth_lambda,
                    "death_lambda": node.death_lambda,
                    "persistence": node.persistence,
                    "size": node.size,
                }
                for node in tree.nodes.values()
            },
            "dendrogram": tree.to_rows(),
        }
        return ClusterPartition(clusters=clusters, outliers=list(result.outliers), diagnostics=diagnostics)
