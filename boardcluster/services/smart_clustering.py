"""Service: end-to-end smart clustering of a board.

cards + graph + config → similarity matrix → clusterer → labels → quality
→ ClusteringResult. Pure function of its inputs; no I/O.
"""

from __future__ import annotations

import logging
from collections import Counter

from boardcluster.adapters.clustering.registry import build_clusterer
from boardcluster.domain.models import (
    Card,
    ClusteringAlgorithm,
    ClusteringConfig,
    ClusteringResult,
    NetworkEdge,
    NetworkNode,
)
from boardcluster.ports.clustering import ClusteringPort
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.distance import DistanceModel
from boardcluster.services.labeling import LabelGenerator
from boardcluster.services.memberships import annotate_memberships
from boardcluster.services.quality import ClusterQualityEvaluator
from boardcluster.services.similarity import SimilarityEngine

logger = logging.getLogger(__name__)


def nodes_from_cards(cards: list[Card], edges: list[NetworkEdge]) -> list[NetworkNode]:
    """Bare graph nodes for boards whose relations layer supplied none."""
    degree: Counter[str] = Counter()
    for edge in edges:
        degree[edge.source] += 1
        degree[edge.target] += 1
    return [NetworkNode.from_card(card, connection_count=degree[card.id]) for card in cards]


def _card_from_node(node: NetworkNode) -> Card:
    return Card(
        id=node.id,
        title=node.title,
        content=node.content,
        tags=list(node.tags),
        column_type=node.type,
        created_at=node.created_at,
    )


class SmartClusteringService:
    """Cluster, label and evaluate the cards of one board."""

    def __init__(
        self,
        engine: SimilarityEngine | None = None,
        labeler: LabelGenerator | None = None,
        evaluator: ClusterQualityEvaluator | None = None,
        observer: ClusteringObserver | None = None,
        *,
        clusterers: dict[ClusteringAlgorithm, ClusteringPort] | None = None,
        community_resolution: float = 1.0,
        community_seed: int | None = 42,
    ):
        self._engine = engine or SimilarityEngine()
        self._labeler = labeler or LabelGenerator()
        self._evaluator = evaluator or ClusterQualityEvaluator()
        self._observer = observer
        self._clusterers = dict(clusterers or {})
        self._community_resolution = community_resolution
        self._community_seed = community_seed

    @property
    def engine(self) -> SimilarityEngine:
        return self._engine

    def cluster(
        self,
        cards: list[Card],
        nodes: list[NetworkNode] | None = None,
        edges: list[NetworkEdge] | None = None,
        config: ClusteringConfig | None = None,
    ) -> ClusteringResult:
        """Partition the board and return the labelled, scored result."""
        config = (config or ClusteringConfig()).validate()
        edges = edges or []
        nodes = nodes if nodes is not None else nodes_from_cards(cards, edges)
        observer = self._observer
        if observer is None and config.debug:
            from boardcluster.adapters.observability.logging_observer import LoggingObserver

            observer = LoggingObserver()

        # Resolve first so an unsupported variant fails before any work
        clusterer = self._clusterer_for(config.algorithm, observer)

        result = ClusteringResult(algorithm=config.algorithm, parameters=config)
        if not nodes:
            return result

        logger.info(
            f"Clustering {len(nodes)} nodes ({len(cards)} cards, {len(edges)} edges) "
            f"with {config.algorithm.value}"
        )
        cards_by_id = {c.id: c for c in cards}
        matrix = DistanceModel(self._engine, observer).build(nodes, edges, cards_by_id, config)
        partition = clusterer.cluster(nodes, matrix, config, cards=cards_by_id)

        label_cards = {n.id: _card_from_node(n) for n in nodes}
        label_cards.update(cards_by_id)
        self._labeler.label_all(partition.clusters, label_cards)

        result.clusters = partition.clusters
        result.outliers = partition.outliers
        result.quality = self._evaluator.evaluate(partition.clusters, partition.outliers)
        result.diagnostics = partition.diagnostics

        if config.include_memberships:
            result.memberships, result.coverage = annotate_memberships(
                [n.id for n in nodes], partition.clusters, partition.outliers, edges
            )

        if observer is not None:
            observer.on_event(
                "clustering.result",
                algorithm=config.algorithm.value,
                clusters=len(result.clusters),
                outliers=len(result.outliers),
                coverage=result.quality.coverage_ratio,
                avg_cohesion=result.quality.avg_cohesion,
            )
        return result

    def _clusterer_for(
        self,
        algorithm: ClusteringAlgorithm,
        observer: ClusteringObserver | None,
    ) -> ClusteringPort:
        if algorithm in self._clusterers:
            return self._clusterers[algorithm]
        return build_clusterer(
            algorithm,
            observer=observer,
            resolution=self._community_resolution,
            seed=self._community_seed,
        )


def perform_smart_clustering(
    cards: list[Card],
    nodes: list[NetworkNode] | None = None,
    edges: list[NetworkEdge] | None = None,
    config: ClusteringConfig | None = None,
) -> ClusteringResult:
    """One-shot clustering with default engine, labeller and evaluator."""
    return SmartClusteringService().cluster(cards, nodes, edges, config)
