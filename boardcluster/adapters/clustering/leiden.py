"""Clustering adapter: Leiden community detection (via leidenalg + igraph).

The similarity matrix is thresholded into a weighted graph; each Leiden
community becomes a cluster, subject to the usual size bounds.
"""

from __future__ import annotations

import logging

import numpy as np

from boardcluster.domain.models import Card, ClusteringAlgorithm, ClusteringConfig, NetworkNode
from boardcluster.ports.clustering import ClusterPartition, ClusteringPort
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.cluster_builder import apply_size_bounds, build_cluster
from boardcluster.services.distance import SimilarityMatrix

logger = logging.getLogger(__name__)


class LeidenCommunityClusterer(ClusteringPort):
    """Weighted Leiden community detection over similar-enough pairs."""

    algorithm = ClusteringAlgorithm.COMMUNITY

    def __init__(
        self,
        resolution: float = 1.0,
        seed: int | None = 42,
        observer: ClusteringObserver | None = None,
    ):
        self._resolution = resolution
        self._seed = seed
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

        communities = self.communities(matrix, config.similarity_threshold)
        # Largest first; ties keep board order
        communities.sort(key=lambda c: (-len(c), matrix.node_ids.index(c[0])))

        kept, demoted = apply_size_bounds(communities, config.min_cluster_size, config.max_cluster_size)
        clustered = {nid for group in kept for nid in group}
        outliers = [nid for nid in matrix.node_ids if nid not in clustered]

        nodes_by_id = {n.id: n for n in nodes}
        clusters = [
            build_cluster(f"community-{k}", group, nodes_by_id, cards or {}, matrix)
            for k, group in enumerate(kept)
        ]

        if self._observer is not None:
            self._observer.on_event(
                "community.partition",
                resolution=self._resolution,
                communities=len(communities),
                demoted=len(demoted),
            )
        logger.info(f"Leiden: {len(clusters)} communities kept, {len(outliers)} outliers")
        return ClusterPartition(
            clusters=clusters,
            outliers=outliers,
            diagnostics={"resolution": self._resolution, "raw_communities": len(communities)},
        )

    def communities(self, matrix: SimilarityMatrix, threshold: float) -> list[list[str]]:
        import igraph as ig  # lazy
        import leidenalg  # lazy

        node_ids = matrix.node_ids
        rows, cols = np.triu_indices(matrix.size, k=1)
        sims = matrix.values[rows, cols]
        mask = (sims >= threshold) & (sims > 0)

        g = ig.Graph(n=len(node_ids), directed=False)
        edge_tuples = [(int(s), int(t)) for s, t in zip(rows[mask], cols[mask])]
        weights = [float(w) for w in sims[mask]]

        if not edge_tuples:
            # No edges - each node is its own community
            return [[nid] for nid in node_ids]

        g.add_edges(edge_tuples)
        g.es["weight"] = weights

        partition = leidenalg.find_partition(
            g,
            leidenalg.RBConfigurationVertexPartition,
            weights="weight",
            resolution_parameter=self._resolution,
            seed=self._seed,
        )

        communities: list[list[str]] = []
        for community_indices in partition:
            comm = [node_ids[i] for i in sorted(community_indices)]
            if comm:
                communities.append(comm)
        return communities
