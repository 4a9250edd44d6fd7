"""Tests for the board similarity matrix."""

import numpy as np
import pytest

from boardcluster.adapters.semantic.embedding_cosine import EmbeddingSemanticSimilarity
from boardcluster.domain.models import ClusteringConfig, NetworkEdge, NetworkNode
from boardcluster.services.distance import DistanceModel, SimilarityMatrix
from boardcluster.services.similarity import SimilarityEngine
from tests.conftest import MockEmbedding


def _edges_only():
    return ClusteringConfig(
        weight_strength=1.0,
        use_semantic_analysis=False,
        use_tag_similarity=False,
        use_content_similarity=False,
    )


class TestDistanceModel:
    """Tests for DistanceModel.build."""

    def test_matrix_is_symmetric_with_zero_diagonal(self, sample_board):
        """Similarity is symmetric, bounded and zero on the diagonal."""
        cards, nodes, edges = sample_board
        matrix = DistanceModel().build(nodes, edges, {c.id: c for c in cards}, ClusteringConfig())

        assert matrix.size == len(nodes)
        assert np.allclose(matrix.values, matrix.values.T)
        assert np.all(np.diag(matrix.values) == 0.0)
        assert matrix.values.min() >= 0.0
        assert matrix.values.max() <= 1.0

    def test_distances_complement_similarity(self, sample_board):
        """Distance is 1 − similarity off the diagonal and 0 on it."""
        cards, nodes, edges = sample_board
        matrix = DistanceModel().build(nodes, edges, {c.id: c for c in cards}, ClusteringConfig())
        d = matrix.distances()

        assert np.all(np.diag(d) == 0.0)
        assert d[0, 1] == pytest.approx(1.0 - matrix.values[0, 1])

    def test_edge_strength_only(self, sample_board):
        """With only the graph signal, similarity equals edge strength."""
        cards, nodes, edges = sample_board
        matrix = DistanceModel().build(nodes, edges, {c.id: c for c in cards}, _edges_only())

        assert matrix.get("a1", "a2") == pytest.approx(0.9)
        assert matrix.get("b1", "a3") == pytest.approx(0.65)
        assert matrix.get("a1", "z1") == 0.0

    def test_strongest_parallel_edge_wins(self):
        """Duplicate edges between a pair keep the strongest one."""
        nodes = [NetworkNode(id="x"), NetworkNode(id="y")]
        edges = [
            NetworkEdge(source="x", target="y", strength=0.3),
            NetworkEdge(source="y", target="x", strength=0.8),
            NetworkEdge(source="x", target="missing", strength=1.0),
        ]
        matrix = DistanceModel().build(nodes, edges, {}, _edges_only())

        assert matrix.get("x", "y") == pytest.approx(0.8)

    def test_node_tags_used_without_cards(self):
        """Nodes without a card fall back to their own tags."""
        nodes = [
            NetworkNode(id="x", tags=["ops"]),
            NetworkNode(id="y", tags=["OPS"]),
            NetworkNode(id="z", tags=["design"]),
        ]
        config = ClusteringConfig(
            weight_strength=0.0, weight_tag=1.0, weight_semantic=0.0, weight_content=0.0
        )
        matrix = DistanceModel().build(nodes, [], {}, config)

        assert matrix.get("x", "y") == pytest.approx(1.0)
        assert matrix.get("x", "z") == 0.0

    def test_similarity_capped_at_one(self, duplicate_cards):
        """Weights summing above 1 still give at most 1."""
        nodes = [NetworkNode.from_card(c) for c in duplicate_cards]
        config = ClusteringConfig(weight_semantic=1.0, weight_content=1.0, weight_tag=1.0)
        matrix = DistanceModel().build(nodes, [], {c.id: c for c in duplicate_cards}, config)

        assert matrix.values.max() == pytest.approx(1.0)

    def test_empty_board(self):
        """No nodes gives an empty matrix."""
        matrix = DistanceModel().build([], [], {}, ClusteringConfig())

        assert matrix.size == 0
        assert matrix.values.shape == (0, 0)

    def test_observer_receives_matrix_event(self, sample_board, observer):
        """Building the matrix reports its size to the observer."""
        cards, nodes, edges = sample_board
        DistanceModel(observer=observer).build(nodes, edges, {c.id: c for c in cards}, ClusteringConfig())

        stage, payload = observer.events[0]
        assert stage == "distance.matrix"
        assert payload["nodes"] == len(nodes)
        assert payload["edges"] == len(edges)


class TestSimilarityMatrix:
    """Tests for matrix helpers."""

    def test_mean_pairwise_and_between(self):
        """Pairwise and cross-group means read the right cells."""
        values = np.array([
            [0.0, 0.8, 0.2],
            [0.8, 0.0, 0.4],
            [0.2, 0.4, 0.0],
        ])
        matrix = SimilarityMatrix(node_ids=["a", "b", "c"], values=values)

        assert matrix.mean_pairwise(["a", "b"]) == pytest.approx(0.8)
        assert matrix.mean_pairwise(["a"]) == 0.0
        assert matrix.mean_between(["a", "b"], ["c"]) == pytest.approx(0.3)

    def test_pairwise_uses_overall_scores(self, duplicate_cards):
        """pairwise() fills the matrix with engine scores."""
        matrix = DistanceModel().pairwise(duplicate_cards[:3])

        assert matrix.get("d0", "d1") == 1.0
        assert matrix.get("d0", "d0") == 0.0

    def test_index_built_once(self):
        """The id lookup is built at construction and reused."""
        matrix = SimilarityMatrix(node_ids=["a", "b"], values=np.array([[0.0, 0.4], [0.4, 0.0]]))

        assert matrix.index() is matrix.index()
        assert matrix.index() == {"a": 0, "b": 1}
        assert matrix.get("b", "a") == pytest.approx(0.4)


class TestIdenticalCards:
    """Duplicated cards under the default weights."""

    def test_duplicates_score_one(self, duplicate_cards):
        """Identical cards are fully similar even though the weighted sum would be lower."""
        nodes = [NetworkNode.from_card(c) for c in duplicate_cards]
        matrix = DistanceModel().build(nodes, [], {c.id: c for c in duplicate_cards}, ClusteringConfig())

        upper = matrix.values[np.triu_indices(5, k=1)]
        assert np.all(upper == 1.0)
        assert np.all(np.diag(matrix.values) == 0.0)

    def test_near_duplicates_use_weighted_sum(self, duplicate_cards):
        """A different column breaks identity, so the signals are summed as usual."""
        cards = duplicate_cards[:2]
        cards[1].column_type = "ideas"
        nodes = [NetworkNode.from_card(c) for c in cards]
        matrix = DistanceModel().build(nodes, [], {c.id: c for c in cards}, ClusteringConfig())

        assert matrix.get("d0", "d1") < 1.0


class _CountingEmbedding(MockEmbedding):
    """Records every batch sent to the provider."""

    def __init__(self):
        self.batches = []

    def embed_batch(self, texts):
        self.batches.append(list(texts))
        return super().embed_batch(texts)


class TestEmbeddingCalls:
    """Embedding usage while building a matrix."""

    def test_board_embedded_once(self, sample_board):
        """All card texts go to the provider in one batch, not once per pair."""
        cards, nodes, edges = sample_board
        embedding = _CountingEmbedding()
        engine = SimilarityEngine(EmbeddingSemanticSimilarity(embedding))

        DistanceModel(engine).build(nodes, edges, {c.id: c for c in cards}, ClusteringConfig())

        assert len(embedding.batches) == 1
        assert sorted(embedding.batches[0]) == sorted({c.text for c in cards if c.text})

    def test_semantic_disabled_skips_embedding(self, sample_board):
        """With semantic analysis off the provider is never called."""
        cards, nodes, edges = sample_board
        embedding = _CountingEmbedding()
        engine = SimilarityEngine(EmbeddingSemanticSimilarity(embedding))

        DistanceModel(engine).build(
            nodes, edges, {c.id: c for c in cards}, ClusteringConfig(use_semantic_analysis=False)
        )

        assert embedding.batches == []
