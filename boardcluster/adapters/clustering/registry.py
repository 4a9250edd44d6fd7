"""Select the clustering adapter for an algorithm variant."""

from __future__ import annotations

from boardcluster.domain.errors import UnsupportedAlgorithmError
from boardcluster.domain.models import ClusteringAlgorithm
from boardcluster.ports.clustering import ClusteringPort
from boardcluster.ports.observability import ClusteringObserver


def build_clusterer(
    algorithm: ClusteringAlgorithm | str,
    *,
    observer: ClusteringObserver | None = None,
    resolution: float = 1.0,
    seed: int | None = 42,
) -> ClusteringPort:
    """Return the adapter for *algorithm*; unimplemented variants raise."""
    algorithm = ClusteringAlgorithm.parse(algorithm)

    if algorithm is ClusteringAlgorithm.DBSCAN:
        from boardcluster.adapters.clustering.dbscan import DBSCANClusterer
        return DBSCANClusterer(observer=observer)

    elif algorithm is ClusteringAlgorithm.HDBSCAN:
        from boardcluster.adapters.clustering.hdbscan_provider import HDBSCANProvider
        return HDBSCANProvider(observer=observer)

    elif algorithm is ClusteringAlgorithm.COMMUNITY:
        from boardcluster.adapters.clustering.leiden import LeidenCommunityClusterer
        return LeidenCommunityClusterer(resolution=resolution, seed=seed, observer=observer)

    raise UnsupportedAlgorithmError(algorithm.value)
