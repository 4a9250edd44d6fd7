from boardcluster.adapters.clustering.registry import build_clusterer

__all__ = ["build_clusterer"]
