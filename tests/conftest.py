"""Shared fixtures: mock ports, sample boards and distance helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import numpy as np
import pytest

from boardcluster.domain.models import Card, ClusteringConfig, NetworkEdge, NetworkNode
from boardcluster.ports.embedding import EmbeddingPort
from boardcluster.ports.observability import ClusteringObserver
from boardcluster.services.labeling import LabelDictionaries, LabelGenerator


# ── Mock Embedding ──


class MockEmbedding(EmbeddingPort):
    """Deterministic vectors seeded from the text hash."""

    DIM = 8

    def embed(self, text: str) -> list[float]:
        rng = np.random.RandomState(hash(text) % 2**31)
        return rng.randn(self.DIM).tolist()

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]

    def dimension(self) -> int:
        return self.DIM


class FailingEmbedding(MockEmbedding):
    """Simulates an unreachable embedding provider."""

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        raise ConnectionError("embedding service unavailable")


# ── Recording Observer ──


class RecordingObserver(ClusteringObserver):
    """Keeps every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def on_event(self, stage: str, **payload: Any) -> None:
        self.events.append((stage, payload))

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.events]


# ── Helpers ──


def make_card(card_id: str, title: str = "", content: str | None = None, **kwargs: Any) -> Card:
    return Card(id=card_id, title=title, content=content, **kwargs)


def two_blob_distances(n_per_blob: int = 3, within: float = 0.1, across: float = 0.9) -> np.ndarray:
    """Two tight groups far from each other."""
    n = 2 * n_per_blob
    d = np.full((n, n), across)
    d[:n_per_blob, :n_per_blob] = within
    d[n_per_blob:, n_per_blob:] = within
    np.fill_diagonal(d, 0.0)
    return d


# ── Fixtures ──


@pytest.fixture
def mock_embedding():
    return MockEmbedding()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def dictionaries():
    return LabelDictionaries.load()


@pytest.fixture
def label_generator(dictionaries):
    return LabelGenerator(dictionaries)


@pytest.fixture
def ux_infra_cards():
    """6 cards: 3 tagged 'ux', 3 tagged 'infra', unrelated titles."""
    titles = [
        "Onboarding survey results",
        "Checkout button confusion",
        "Navigation feels slow",
        "Upgrade database cluster",
        "Rotate TLS certificates",
        "Autoscaling group limits",
    ]
    cards = []
    for i, title in enumerate(titles):
        tag = "ux" if i < 3 else "infra"
        cards.append(make_card(f"c{i}", title, tags=[tag], column_type="ideas"))
    return cards


@pytest.fixture
def tag_only_config():
    """Tag weight 1, every other signal weight 0."""
    return ClusteringConfig(
        min_cluster_size=2,
        similarity_threshold=0.5,
        weight_strength=0.0,
        weight_semantic=0.0,
        weight_tag=1.0,
        weight_content=0.0,
    )


@pytest.fixture
def duplicate_cards():
    """5 identical untagged cards."""
    return [
        make_card(f"d{i}", "Fix login timeout bug", "Session expires during checkout", column_type="bugs")
        for i in range(5)
    ]


@pytest.fixture
def text_only_config():
    """Semantic and content signals summing to 1, tight threshold."""
    return ClusteringConfig(
        min_cluster_size=2,
        similarity_threshold=0.9,
        weight_strength=0.0,
        weight_semantic=0.8,
        weight_tag=0.0,
        weight_content=0.2,
    )


@pytest.fixture
def sample_board():
    """A small mixed board: cards, graph nodes and edges."""
    base = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    cards = [
        make_card("a1", "User interview notes", "Users struggle with onboarding",
                  tags=["ux", "research"], column_type="insights", created_by="kim", created_at=base),
        make_card("a2", "User interview recording", "Onboarding flow is confusing",
                  tags=["ux"], column_type="insights", created_by="kim", created_at=base + timedelta(minutes=20)),
        make_card("a3", "Onboarding drop-off", "Users leave at step two",
                  tags=["ux"], column_type="insights", created_by="lee", created_at=base + timedelta(hours=3)),
        make_card("b1", "Database failover test", "Replica promotion took too long",
                  tags=["infra"], column_type="tasks", created_by="pat", created_at=base + timedelta(days=2)),
        make_card("b2", "Database backup schedule", "Nightly backups overlap with batch jobs",
                  tags=["infra"], column_type="tasks", created_by="pat", created_at=base + timedelta(days=2, hours=1)),
        make_card("b3", "Database connection limits", "Pool exhausted under load",
                  tags=["infra"], column_type="tasks", created_by="sam", created_at=base + timedelta(days=3)),
        make_card("z1", "Team offsite lunch", None, tags=[], column_type="misc"),
    ]
    edges = [
        NetworkEdge(source="a1", target="a2", strength=0.9, type="semantic"),
        NetworkEdge(source="a2", target="a3", strength=0.7, type="semantic"),
        NetworkEdge(source="b1", target="b2", strength=0.8, type="semantic"),
        NetworkEdge(source="b2", target="b3", strength=0.6, type="semantic"),
        NetworkEdge(source="a3", target="b1", strength=0.65, type="manual"),
    ]
    degree: dict[str, int] = {}
    for e in edges:
        degree[e.source] = degree.get(e.source, 0) + 1
        degree[e.target] = degree.get(e.target, 0) + 1
    nodes = [NetworkNode.from_card(c, connection_count=degree.get(c.id, 0)) for c in cards]
    return cards, nodes, edges
