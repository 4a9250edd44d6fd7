"""Service: full pairwise similarity / distance matrix for a board.

O(n²) in time and memory and no matrix is cached between calls; callers
should batch or size-limit very large boards. Identical cards score 1.0
whatever the signal weights.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from boardcluster.domain.models import Card, ClusteringConfig, NetworkEdge, NetworkNode
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.similarity import SimilarityEngine, is_identical
from boardcluster.services.text import jaccard, normalize_tags

logger = logging.getLogger(__name__)


@dataclass
class SimilarityMatrix:
    """Symmetric N×N similarity in [0, 1] with a zero diagonal."""

    node_ids: list[str]
    values: np.ndarray
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._index = {nid: i for i, nid in enumerate(self.node_ids)}

    @classmethod
    def empty(cls) -> SimilarityMatrix:
        return cls(node_ids=[], values=np.zeros((0, 0), dtype=np.float64))

    @property
    def size(self) -> int:
        return len(self.node_ids)

    def index(self) -> dict[str, int]:
        return self._index

    def get(self, a: str, b: str) -> float:
        return float(self.values[self._index[a], self._index[b]])

    def distances(self) -> np.ndarray:
        """``1 − similarity`` off the diagonal, 0 on it."""
        dist = 1.0 - self.values
        np.fill_diagonal(dist, 0.0)
        return np.clip(dist, 0.0, 1.0)

    def mean_pairwise(self, node_ids: list[str]) -> float:
        """Mean similarity over all unordered pairs of *node_ids*."""
        idx = self.index()
        positions = [idx[nid] for nid in node_ids if nid in idx]
        if len(positions) < 2:
            return 0.0
        sub = self.values[np.ix_(positions, positions)]
        upper = sub[np.triu_indices(len(positions), k=1)]
        return float(upper.mean())

    def mean_between(self, ids_a: list[str], ids_b: list[str]) -> float:
        """Mean similarity between every node of *ids_a* and every node of *ids_b*."""
        idx = self.index()
        rows = [idx[nid] for nid in ids_a if nid in idx]
        cols = [idx[nid] for nid in ids_b if nid in idx]
        if not rows or not cols:
            return 0.0
        return float(self.values[np.ix_(rows, cols)].mean())


class DistanceModel:
    """Combine graph, tag, semantic and content signals into one matrix."""

    def __init__(
        self,
        engine: SimilarityEngine | None = None,
        observer: ClusteringObserver | None = None,
    ):
        self._engine = engine or SimilarityEngine()
        self._observer = observer

    def build(
        self,
        nodes: list[NetworkNode],
        edges: list[NetworkEdge],
        cards: dict[str, Card],
        config: ClusteringConfig,
    ) -> SimilarityMatrix:
        """Similarity matrix over *nodes* using the signals enabled in *config*."""
        if not nodes:
            return SimilarityMatrix.empty()

        node_ids = [n.id for n in nodes]
        index = {nid: i for i, nid in enumerate(node_ids)}
        strengths = self._edge_strengths(edges, index)
        tag_sets = [
            normalize_tags(cards[n.id].tags if n.id in cards and cards[n.id].tags else n.tags)
            for n in nodes
        ]

        if config.use_semantic_analysis:
            self._engine.prepare([cards[nid] for nid in node_ids if nid in cards])

        n = len(nodes)
        values = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            card_a = cards.get(node_ids[i])
            for j in range(i + 1, n):
                card_b = cards.get(node_ids[j])
                if card_a is not None and card_b is not None and is_identical(card_a, card_b):
                    values[i, j] = values[j, i] = 1.0
                    continue

                score = config.weight_strength * strengths.get((i, j), 0.0)

                if config.use_tag_similarity:
                    score += config.weight_tag * jaccard(tag_sets[i], tag_sets[j])

                if card_a is not None and card_b is not None:
                    if config.use_semantic_analysis:
                        score += config.weight_semantic * self._engine.semantic_similarity(card_a, card_b)
                    if config.use_content_similarity:
                        score += config.weight_content * self._engine.content_similarity(card_a, card_b)

                values[i, j] = values[j, i] = min(1.0, score)

        logger.debug(f"Built {n}x{n} similarity matrix from {len(strengths)} weighted edges")
        if self._observer is not None:
            upper = values[np.triu_indices(n, k=1)]
            self._observer.on_event(
                "distance.matrix",
                nodes=n,
                edges=len(strengths),
                mean_similarity=float(upper.mean()) if upper.size else 0.0,
                max_similarity=float(upper.max()) if upper.size else 0.0,
            )
        return SimilarityMatrix(node_ids=node_ids, values=values)

    def pairwise(self, cards: list[Card]) -> SimilarityMatrix:
        """Matrix of SimilarityEngine overall scores for a plain card list."""
        n = len(cards)
        values = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            for j in range(i + 1, n):
                score = self._engine.similarity(cards[i], cards[j]).overall_score
                values[i, j] = values[j, i] = score
        return SimilarityMatrix(node_ids=[c.id for c in cards], values=values)

    @staticmethod
    def _edge_strengths(
        edges: list[NetworkEdge],
        index: dict[str, int],
    ) -> dict[tuple[int, int], float]:
        """Strongest edge per unordered node pair, keyed (low, high)."""
        strengths: dict[tuple[int, int], float] = {}
        for edge in edges:
            s = index.get(edge.source)
            t = index.get(edge.target)
            if s is None or t is None or s == t:
                continue
            key = (min(s, t), max(s, t))
            strength = min(1.0, max(0.0, edge.strength))
            if strength > strengths.get(key, 0.0):
                strengths[key] = strength
        return strengths
