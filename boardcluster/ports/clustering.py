"""Port: partitioning algorithm over a similarity matrix."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from boardcluster.domain.models import Card, ClusteringAlgorithm, ClusteringConfig, NetworkNode, SmartCluster

if TYPE_CHECKING:
    from boardcluster.services.distance import SimilarityMatrix


@dataclass
class ClusterPartition:
    """Unlabelled clusters plus the nodes assigned to none of them."""

    clusters: list[SmartCluster] = field(default_factory=list)
    outliers: list[str] = field(default_factory=list)
    diagnostics: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def all_outliers(cls, nodes: list[NetworkNode]) -> ClusterPartition:
        return cls(clusters=[], outliers=[n.id for n in nodes])


class ClusteringPort(ABC):
    """Partition board nodes into clusters and outliers."""

    algorithm: ClusteringAlgorithm

    @abstractmethod
    def cluster(
        self,
        nodes: list[NetworkNode],
        matrix: SimilarityMatrix,
        config: ClusteringConfig,
        *,
        cards: dict[str, Card] | None = None,
    ) -> ClusterPartition:
        """Return a partition in which every node appears exactly once."""
