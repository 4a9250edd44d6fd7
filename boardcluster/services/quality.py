"""Service: aggregate quality of a clustering.

Only cohesion and coverage are measured. Silhouette, modularity and the
distance figures are fixed proxies derived from average cohesion so that
results stay comparable with earlier board reports:

- silhouette = avg_cohesion
- modularity = 0.8 · avg_cohesion
- inter_cluster_distance = 1.2 · avg_cohesion
- intra_cluster_distance = 1 − avg_cohesion
"""

from __future__ import annotations

from boardcluster.domain.models import ClusterQualityMetrics, SmartCluster

MODULARITY_FACTOR = 0.8
INTER_DISTANCE_FACTOR = 1.2


class ClusterQualityEvaluator:
    """Score a partition; pure and deterministic."""

    def evaluate(self, clusters: list[SmartCluster], outliers: list[str]) -> ClusterQualityMetrics:
        if not clusters:
            return ClusterQualityMetrics()

        avg_cohesion = sum(c.cohesion for c in clusters) / len(clusters)
        clustered = sum(c.size for c in clusters)
        total = clustered + len(outliers)

        return ClusterQualityMetrics(
            silhouette_score=avg_cohesion,
            modularity_score=MODULARITY_FACTOR * avg_cohesion,
            inter_cluster_distance=INTER_DISTANCE_FACTOR * avg_cohesion,
            intra_cluster_distance=1.0 - avg_cohesion,
            coverage_ratio=clustered / total if total else 0.0,
            avg_cohesion=avg_cohesion,
        )
