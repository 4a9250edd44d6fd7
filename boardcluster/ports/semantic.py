"""Port: semantic similarity between two cards."""

from __future__ import annotations

from abc import ABC, abstractmethod

from boardcluster.domain.models import Card


class SemanticSimilarityPort(ABC):
    """Score how close two cards are in meaning."""

    @abstractmethod
    def similarity(self, card_a: Card, card_b: Card) -> float:
        """Return a score in [0, 1]. Errors propagate to the caller."""

    def prepare(self, cards: list[Card]) -> None:
        """Warm up before many pairs over *cards* are scored. No-op by default."""

    def name(self) -> str:
        """Return an identifier for diagnostics."""
        return type(self).__name__
