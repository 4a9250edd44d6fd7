"""boardcluster: similarity scoring, clustering and labelling of board cards."""

from boardcluster.domain.errors import (
    BoardClusterError,
    ConfigurationError,
    InputError,
    UnsupportedAlgorithmError,
)
from boardcluster.domain.models import (
    AISuggestion,
    Card,
    ClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    ClusterLabel,
    ClusterQualityMetrics,
    NetworkEdge,
    NetworkNode,
    SimilarityScore,
    SmartCluster,
)
from boardcluster.services.distance import DistanceModel, SimilarityMatrix
from boardcluster.services.labeling import LabelDictionaries, LabelGenerator
from boardcluster.services.quality import ClusterQualityEvaluator
from boardcluster.services.similarity import SimilarityEngine
from boardcluster.services.smart_clustering import SmartClusteringService, perform_smart_clustering

__version__ = "0.1.0"

__all__ = [
    "AISuggestion",
    "BoardClusterError",
    "Card",
    "ClusterLabel",
    "ClusterQualityEvaluator",
    "ClusterQualityMetrics",
    "ClusteringAlgorithm",
    "ClusteringConfig",
    "ClusteringResult",
    "ConfigurationError",
    "DistanceModel",
    "InputError",
    "LabelDictionaries",
    "LabelGenerator",
    "NetworkEdge",
    "NetworkNode",
    "SimilarityEngine",
    "SimilarityMatrix",
    "SimilarityScore",
    "SmartCluster",
    "SmartClusteringService",
    "UnsupportedAlgorithmError",
    "perform_smart_clustering",
]
