"""HDBSCAN orchestrator: mutual reachability → MST → tree → selection → GLOSH.

Works on plain index-aligned inputs (node ids and a distance matrix) so it
can be tested without any board objects. Use
``boardcluster.adapters.clustering.hdbscan_provider.HDBSCANProvider`` to
plug it into the clustering service.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from boardcluster.domain.models import ClusteringConfig
from boardcluster.hdbscan.glosh import GLOSHOutlierProcessor, OutlierScore
from boardcluster.hdbscan.hierarchy import ClusterTree, HierarchyBuilder
from boardcluster.hdbscan.mst import MSTBuilder
from boardcluster.hdbscan.mutual_reachability import MutualReachabilityCalculator
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.cluster_builder import apply_size_bounds

logger = logging.getLogger(__name__)


def _ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


@dataclass
class ProcessingMetrics:
    """Wall-clock time per stage, in milliseconds."""

    distance_ms: float = 0.0
    mutual_reachability_ms: float = 0.0
    mst_ms: float = 0.0
    hierarchy_ms: float = 0.0
    selection_ms: float = 0.0
    outlier_ms: float = 0.0
    total_ms: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "distance_ms": self.distance_ms,
            "mutual_reachability_ms": self.mutual_reachability_ms,
            "mst_ms": self.mst_ms,
            "hierarchy_ms": self.hierarchy_ms,
            "selection_ms": self.selection_ms,
            "outlier_ms": self.outlier_ms,
            "total_ms": self.total_ms,
        }


@dataclass
class HDBSCANCluster:
    """A selected tree node after GLOSH filtering and the size policy."""

    id: str
    tree_node_id: int
    node_ids: list[str]
    stability: float
    birth_lambda: float
    death_lambda: float
    membership: dict[str, float] = field(default_factory=dict)  # 1 − GLOSH score

    @property
    def persistence(self) -> float:
        return self.death_lambda - self.birth_lambda


@dataclass
class HDBSCANResult:
    clusters: list[HDBSCANCluster] = field(default_factory=list)
    outliers: list[str] = field(default_factory=list)
    outlier_scores: dict[str, float] = field(default_factory=dict)
    tree: ClusterTree = field(default_factory=ClusterTree)
    stability_scores: dict[int, float] = field(default_factory=dict)
    processing_metrics: ProcessingMetrics = field(default_factory=ProcessingMetrics)
    min_pts: int = 0

    def statistics(self) -> dict[str, Any]:
        total = sum(len(c.node_ids) for c in self.clusters) + len(self.outliers)
        clustered = total - len(self.outliers)
        return {
            "total_nodes": total,
            "clustered_nodes": clustered,
            "outlier_nodes": len(self.outliers),
            "coverage_ratio": clustered / total if total else 0.0,
            "average_stability": (
                float(np.mean([c.stability for c in self.clusters])) if self.clusters else 0.0
            ),
            "max_outlier_score": max(self.outlier_scores.values(), default=0.0),
        }


class HDBSCANClusterer:
    """Run the full HDBSCAN pipeline over a distance matrix."""

    def __init__(
        self,
        *,
        min_cluster_size: int = 2,
        max_cluster_size: int = 20,
        min_pts: int | None = None,
        outlier_threshold: float = 0.9,
        allow_single_cluster: bool = False,
        observer: ClusteringObserver | None = None,
    ):
        self.min_cluster_size = min_cluster_size
        self.max_cluster_size = max_cluster_size
        self.min_pts = min_pts if min_pts is not None else max(2, min_cluster_size - 1)
        self.outlier_threshold = outlier_threshold
        self.allow_single_cluster = allow_single_cluster
        self._observer = observer

    @classmethod
    def from_config(
        cls,
        config: ClusteringConfig,
        observer: ClusteringObserver | None = None,
    ) -> HDBSCANClusterer:
        return cls(
            min_cluster_size=config.min_cluster_size,
            max_cluster_size=config.max_cluster_size,
            min_pts=config.min_pts,
            outlier_threshold=config.outlier_threshold,
            allow_single_cluster=config.allow_single_cluster,
            observer=observer,
        )

    def fit(self, node_ids: list[str], distances: np.ndarray) -> HDBSCANResult:
        n = len(node_ids)
        if n == 0:
            return HDBSCANResult(min_pts=self.min_pts)
        if n < 2 * self.min_pts:
            logger.info(f"HDBSCAN: {n} nodes < 2*min_pts ({self.min_pts}), all outliers")
            return HDBSCANResult(
                outliers=list(node_ids),
                outlier_scores={nid: 1.0 for nid in node_ids},
                min_pts=self.min_pts,
            )

        metrics = ProcessingMetrics()
        started = time.perf_counter()

        t = time.perf_counter()
        reach = MutualReachabilityCalculator(self.min_pts).compute(distances)
        metrics.mutual_reachability_ms = _ms(t)
        self._emit("hdbscan.mutual_reachability", k=reach.k,
                   core_min=float(reach.core_distances.min()),
                   core_max=float(reach.core_distances.max()))

        t = time.perf_counter()
        mst = MSTBuilder().build(reach.matrix)
        metrics.mst_ms = _ms(t)
        self._emit("hdbscan.mst", edges=len(mst.edges), total_weight=mst.total_weight)

        t = time.perf_counter()
        builder = HierarchyBuilder(self.min_cluster_size)
        tree = builder.build(mst)
        metrics.hierarchy_ms = _ms(t)

        t = time.perf_counter()
        selected = builder.select_clusters(tree, self.allow_single_cluster)
        metrics.selection_ms = _ms(t)
        self._emit("hdbscan.selection", tree_nodes=len(tree), selected=selected)

        t = time.perf_counter()
        scores = GLOSHOutlierProcessor(self.outlier_threshold).score(tree, selected, n)
        metrics.outlier_ms = _ms(t)

        result = self._assemble(node_ids, tree, selected, scores)
        metrics.total_ms = _ms(started)
        result.processing_metrics = metrics

        logger.info(
            f"HDBSCAN: {n} nodes, min_pts={self.min_pts}, "
            f"{len(result.clusters)} clusters, {len(result.outliers)} outliers"
        )
        self._emit("hdbscan.result", **result.statistics())
        return result

    def _assemble(
        self,
        node_ids: list[str],
        tree: ClusterTree,
        selected: list[int],
        scores: list[OutlierScore],
    ) -> HDBSCANResult:
        by_point = {s.point: s for s in scores}

        groups: list[list[str]] = []
        for node_id in selected:
            node = tree.nodes[node_id]
            kept = [p for p in node.points if not by_point[p].is_outlier]
            # Most typical members first, so truncation drops the weakest
            kept.sort(key=lambda p: (by_point[p].score, p))
            groups.append([node_ids[p] for p in kept])

        bounded: list[tuple[int, list[str]]] = []
        for node_id, group in zip(selected, groups):
            kept_groups, _ = apply_size_bounds([group], self.min_cluster_size, self.max_cluster_size)
            if kept_groups:
                bounded.append((node_id, kept_groups[0]))

        clustered = {nid for _, group in bounded for nid in group}
        outliers = [nid for nid in node_ids if nid not in clustered]
        score_of = {node_ids[s.point]: s.score for s in scores}

        clusters = []
        for node_id, group in bounded:
            node = tree.nodes[node_id]
            clusters.append(
                HDBSCANCluster(
                    id=f"hdbscan-{node_id}",
                    tree_node_id=node_id,
                    node_ids=group,
                    stability=node.stability,
                    birth_lambda=node.birth_lambda,
                    death_lambda=node.death_lambda,
                    membership={nid: 1.0 - score_of[nid] for nid in group},
                )
            )

        return HDBSCANResult(
            clusters=clusters,
            outliers=outliers,
            outlier_scores=score_of,
            tree=tree,
            stability_scores={nid: node.stability for nid, node in tree.nodes.items()},
            min_pts=self.min_pts,
        )

    def _emit(self, stage: str, **payload: Any) -> None:
        if self._observer is not None:
            self._observer.on_event(stage, **payload)
