"""HDBSCAN pipeline: mutual reachability, MST, condensed tree, GLOSH."""

from boardcluster.hdbscan.clusterer import HDBSCANCluster, HDBSCANClusterer, HDBSCANResult, ProcessingMetrics
from boardcluster.hdbscan.glosh import GLOSHOutlierProcessor, OutlierScore
from boardcluster.hdbscan.hierarchy import ClusterTree, HierarchicalClusterNode, HierarchyBuilder
from boardcluster.hdbscan.mst import MinimumSpanningTree, MSTBuilder, MSTEdge, UnionFind
from boardcluster.hdbscan.mutual_reachability import MutualReachability, MutualReachabilityCalculator

__all__ = [
    "ClusterTree",
    "GLOSHOutlierProcessor",
    "HDBSCANCluster",
    "HDBSCANClusterer",
    "HDBSCANResult",
    "HierarchicalClusterNode",
    "HierarchyBuilder",
    "MSTBuilder",
    "MSTEdge",
    "MinimumSpanningTree",
    "MutualReachability",
    "MutualReachabilityCalculator",
    "OutlierScore",
    "ProcessingMetrics",
    "UnionFind",
]
