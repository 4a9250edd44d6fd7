"""Semantic adapter: cosine similarity of text embeddings."""

from __future__ import annotations

import logging

import numpy as np

from boardcluster.domain.models import Card
from boardcluster.ports.embedding import EmbeddingPort
from boardcluster.ports.semantic import SemanticSimilarityPort

logger = logging.getLogger(__name__)


class EmbeddingSemanticSimilarity(SemanticSimilarityPort):
    """Cosine of the two cards' embeddings, negative values clipped to 0.

    Vectors are cached by card text, so each distinct text is embedded once
    per adapter. Embedding errors are not caught: a failing provider fails
    the call.
    """

    def __init__(self, embedding: EmbeddingPort):
        self._embedding = embedding
        self._vectors: dict[str, np.ndarray] = {}

    def prepare(self, cards: list[Card]) -> None:
        missing = list(dict.fromkeys(c.text for c in cards if c.text and c.text not in self._vectors))
        if not missing:
            return
        self._store(missing)
        logger.debug(f"Embedded {len(missing)} card texts in one batch")

    def similarity(self, card_a: Card, card_b: Card) -> float:
        if not card_a.text or not card_b.text:
            return 0.0

        missing = list(dict.fromkeys(t for t in (card_a.text, card_b.text) if t not in self._vectors))
        if missing:
            self._store(missing)

        vec_a, vec_b = self._vectors[card_a.text], self._vectors[card_b.text]
        norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
        if norm == 0:
            return 0.0
        cosine = float(np.dot(vec_a, vec_b) / norm)
        return min(1.0, max(0.0, cosine))

    def _store(self, texts: list[str]) -> None:
        for text, vector in zip(texts, self._embedding.embed_batch(texts)):
            self._vectors[text] = np.asarray(vector, dtype=np.float64)

    def name(self) -> str:
        return f"embedding-cosine({self._embedding.dimension()}d)"
