"""Service: multi-signal pairwise similarity between cards.

Four components are scored independently and combined with a weight
profile:

- semantic: meaning overlap, delegated to a SemanticSimilarityPort
- structural: shared tags and column type
- contextual: same author, created close together
- content: title and body word overlap
"""

from __future__ import annotations

import logging

import numpy as np

from boardcluster.domain.models import (
    AISuggestion,
    Card,
    SimilarityComponents,
    SimilarityScore,
    SimilarityWeights,
)
from boardcluster.ports.semantic import SemanticSimilarityPort
from boardcluster.services.text import jaccard, normalize_tags, significant_words

logger = logging.getLogger(__name__)

# Structural blend
TAG_WEIGHT = 0.7
COLUMN_TYPE_WEIGHT = 0.3

# Contextual bonuses
SAME_CREATOR_BONUS = 0.3
WITHIN_HOUR_BONUS = 0.4
WITHIN_DAY_BONUS = 0.2

# Content blend
TITLE_WEIGHT = 0.6
BODY_WEIGHT = 0.4

# Thresholds above which a component is mentioned in the explanation
_EXPLANATIONS = (
    ("semantic", 0.6, "semantically related"),
    ("structural", 0.5, "shares tags or column type"),
    ("contextual", 0.3, "created close together or by the same author"),
    ("content", 0.5, "similar text content"),
)


def _clip(value: float) -> float:
    return min(1.0, max(0.0, value))


def is_identical(card_a: Card, card_b: Card) -> bool:
    """True when two non-empty cards carry the same title, body, tags and column."""
    return (
        bool(card_a.text)
        and card_a.title.strip() == card_b.title.strip()
        and (card_a.content or "").strip() == (card_b.content or "").strip()
        and normalize_tags(card_a.tags) == normalize_tags(card_b.tags)
        and card_a.column_type == card_b.column_type
    )


class SimilarityEngine:
    """Score card pairs from semantic, structural, contextual and content signals."""

    def __init__(
        self,
        semantic: SemanticSimilarityPort | None = None,
        weights: SimilarityWeights | None = None,
    ):
        if semantic is None:
            from boardcluster.adapters.semantic.lexical import LexicalSemanticSimilarity

            semantic = LexicalSemanticSimilarity()
        self._semantic = semantic
        self._weights = weights or SimilarityWeights.generic()

    @property
    def semantic_provider(self) -> SemanticSimilarityPort:
        return self._semantic

    def prepare(self, cards: list[Card]) -> None:
        """Let the semantic provider precompute state for a board before pair scoring."""
        self._semantic.prepare(cards)

    # ── public ──

    def similarity(
        self,
        card_a: Card,
        card_b: Card,
        *,
        weights: SimilarityWeights | None = None,
    ) -> SimilarityScore:
        """Compare two cards with the generic (or given) weight profile."""
        weights = weights or self._weights

        if is_identical(card_a, card_b):
            components = SimilarityComponents(1.0, 1.0, 1.0, 1.0)
            return SimilarityScore(
                overall_score=1.0,
                components=components,
                weights=weights,
                confidence=self.confidence(components),
                explanation="identical content",
            )

        components = SimilarityComponents(
            semantic=self.semantic_similarity(card_a, card_b),
            structural=self.structural_similarity(card_a, card_b),
            contextual=self.contextual_similarity(card_a, card_b),
            content=self.content_similarity(card_a, card_b),
        )
        return self._score(components, weights)

    def from_suggestion(
        self,
        card_a: Card,
        card_b: Card,
        suggestion: AISuggestion,
    ) -> SimilarityScore:
        """Score an externally ranked suggestion with the AI weight profile.

        The suggestion's similarity replaces the semantic component; the
        remaining components are computed from the cards themselves.
        """
        components = SimilarityComponents(
            semantic=_clip(suggestion.similarity),
            structural=self.structural_similarity(card_a, card_b),
            contextual=self.contextual_similarity(card_a, card_b),
            content=self.content_similarity(card_a, card_b),
        )
        score = self._score(components, SimilarityWeights.ai_suggestion())
        if suggestion.explanation:
            score.explanation = suggestion.explanation
        return score

    def rank_related(
        self,
        card: Card,
        candidates: list[Card],
        *,
        min_score: float = 0.0,
        limit: int | None = None,
    ) -> list[tuple[Card, SimilarityScore]]:
        """Return candidates ordered by descending overall score."""
        scored = [
            (other, self.similarity(card, other))
            for other in candidates
            if other.id != card.id
        ]
        scored = [(c, s) for c, s in scored if s.overall_score >= min_score]
        scored.sort(key=lambda pair: pair[1].overall_score, reverse=True)
        return scored[:limit] if limit is not None else scored

    # ── components ──

    def semantic_similarity(self, card_a: Card, card_b: Card) -> float:
        return _clip(self._semantic.similarity(card_a, card_b))

    def structural_similarity(self, card_a: Card, card_b: Card) -> float:
        tag_score = jaccard(normalize_tags(card_a.tags), normalize_tags(card_b.tags))
        # An unset column type is unknown, not a shared column
        same_column = 1.0 if card_a.column_type and card_a.column_type == card_b.column_type else 0.0
        return TAG_WEIGHT * tag_score + COLUMN_TYPE_WEIGHT * same_column

    def contextual_similarity(self, card_a: Card, card_b: Card) -> float:
        score = 0.0
        if card_a.created_by and card_a.created_by == card_b.created_by:
            score += SAME_CREATOR_BONUS

        if card_a.created_at is not None and card_b.created_at is not None:
            hours = abs((card_a.created_at - card_b.created_at).total_seconds()) / 3600.0
            if hours < 1:
                score += WITHIN_HOUR_BONUS
            elif hours < 24:
                score += WITHIN_DAY_BONUS

        return min(score, 1.0)

    def content_similarity(self, card_a: Card, card_b: Card) -> float:
        title = jaccard(significant_words(card_a.title), significant_words(card_b.title))
        body = jaccard(significant_words(card_a.content), significant_words(card_b.content))
        return TITLE_WEIGHT * title + BODY_WEIGHT * body

    # ── scoring ──

    @staticmethod
    def confidence(components: SimilarityComponents) -> float:
        """Mean of component consistency and the strongest component."""
        values = np.asarray(components.values(), dtype=np.float64)
        consistency = max(0.0, 1.0 - 2.0 * float(np.var(values)))
        return (consistency + float(values.max())) / 2.0

    @staticmethod
    def explain(components: SimilarityComponents) -> str:
        reasons = [
            text
            for name, threshold, text in _EXPLANATIONS
            if getattr(components, name) > threshold
        ]
        return ", ".join(reasons) if reasons else "weak relationship"

    def _score(self, components: SimilarityComponents, weights: SimilarityWeights) -> SimilarityScore:
        overall = (
            weights.semantic * components.semantic
            + weights.structural * components.structural
            + weights.contextual * components.contextual
            + weights.content * components.content
        )
        return SimilarityScore(
            overall_score=_clip(overall),
            components=components,
            weights=weights,
            confidence=self.confidence(components),
            explanation=self.explain(components),
        )
