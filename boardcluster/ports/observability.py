"""Port: structured observability hooks.

Pipeline stages publish intermediate statistics as named events instead of
writing them to the log unconditionally. Adapters decide where they go.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ClusteringObserver(ABC):
    """Receive stage events from the clustering pipeline."""

    @abstractmethod
    def on_event(self, stage: str, **payload: Any) -> None:
        """Handle one event. *stage* is a dotted name such as ``hdbscan.mst``."""
