"""Port: text embedding for semantic card similarity."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmbeddingPort(ABC):
    """Map card text to dense vectors."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single piece of text."""

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one call."""

    @abstractmethod
    def dimension(self) -> int:
        """Length of every returned vector."""
