"""Semantic adapter: word overlap, used when no embedding model is configured."""

from __future__ import annotations

from boardcluster.domain.models import Card
from boardcluster.ports.semantic import SemanticSimilarityPort
from boardcluster.services.text import jaccard, significant_words


class LexicalSemanticSimilarity(SemanticSimilarityPort):
    """Jaccard index over the significant words of title and body."""

    def similarity(self, card_a: Card, card_b: Card) -> float:
        return jaccard(significant_words(card_a.text), significant_words(card_b.text))
