"""Observability adapters: forward stage events to logging, or drop them."""

from __future__ import annotations

import logging
from typing import Any

from boardcluster.ports.observability import ClusteringObserver


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    if isinstance(value, (list, tuple)) and len(value) > 8:
        return f"[{len(value)} items]"
    if isinstance(value, dict) and len(value) > 8:
        return f"{{{len(value)} keys}}"
    return str(value)


class LoggingObserver(ClusteringObserver):
    """Write each event as one ``stage key=value ...`` line."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("boardcluster.events")
        self._level = level

    def on_event(self, stage: str, **payload: Any) -> None:
        if not self._logger.isEnabledFor(self._level):
            return
        fields = " ".join(f"{k}={_format_value(v)}" for k, v in payload.items())
        self._logger.log(self._level, f"{stage} {fields}".rstrip())


class NullObserver(ClusteringObserver):
    """Discard all events."""

    def on_event(self, stage: str, **payload: Any) -> None:
        return None
