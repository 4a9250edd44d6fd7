"""Tests for settings loading and the service factory."""

from pathlib import Path

import pytest

from boardcluster.adapters.semantic.embedding_cosine import EmbeddingSemanticSimilarity
from boardcluster.adapters.semantic.lexical import LexicalSemanticSimilarity
from boardcluster.config import build_service, get_settings, load_settings, reset_settings
from boardcluster.domain.errors import ConfigurationError
from boardcluster.domain.models import ClusteringAlgorithm

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "clustering:\n"
        "  algorithm: hdbscan\n"
        "  min_cluster_size: 3\n"
        "  similarityThreshold: 0.6\n"
        "community:\n"
        "  resolution: 0.5\n"
        "labeling:\n"
        "  max_label_length: 30\n",
        encoding="utf-8",
    )
    return path


class TestLoadSettings:
    """Tests for YAML loading and the env overlay."""

    def test_default_file(self):
        """The shipped config file matches the built-in defaults."""
        settings = load_settings(DEFAULT_CONFIG)

        assert settings.clustering.algorithm is ClusteringAlgorithm.DBSCAN
        assert settings.clustering.min_cluster_size == 2
        assert settings.clustering.min_pts is None
        assert settings.semantic.adapter == "lexical"

    def test_yaml_values(self, config_file):
        """YAML sections override defaults."""
        settings = load_settings(config_file)

        assert settings.clustering.algorithm is ClusteringAlgorithm.HDBSCAN
        assert settings.clustering.min_cluster_size == 3
        assert settings.clustering.similarity_threshold == 0.6
        assert settings.clustering.max_cluster_size == 20
        assert settings.community.resolution == 0.5
        assert settings.labeling.max_label_length == 30

    def test_missing_file_uses_defaults(self, tmp_path):
        """A missing config file is not an error."""
        settings = load_settings(tmp_path / "absent.yaml")

        assert settings.clustering.min_cluster_size == 2

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        """Environment variables win over YAML."""
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__MIN_CLUSTER_SIZE", "4")
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__ALGORITHM", "COMMUNITY")
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__MIN_PTS", "3")
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__INCLUDE_MEMBERSHIPS", "true")
        monkeypatch.setenv("BOARDCLUSTER__SEMANTIC__ADAPTER", "embedding")

        settings = load_settings(config_file)

        assert settings.clustering.min_cluster_size == 4
        assert settings.clustering.algorithm is ClusteringAlgorithm.COMMUNITY
        assert settings.clustering.min_pts == 3
        assert settings.clustering.include_memberships is True
        assert settings.semantic.adapter == "embedding"

    def test_unknown_env_keys_ignored(self, monkeypatch):
        """Env vars naming no known field are skipped."""
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__NOPE", "1")
        monkeypatch.setenv("BOARDCLUSTER__TOO__MANY__PARTS", "1")

        assert load_settings(DEFAULT_CONFIG).clustering.min_cluster_size == 2

    def test_invalid_env_value(self, monkeypatch):
        """A value that cannot be coerced is a configuration error."""
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__MIN_CLUSTER_SIZE", "many")

        with pytest.raises(ConfigurationError):
            load_settings(DEFAULT_CONFIG)

    def test_out_of_range_value(self, monkeypatch):
        """Loaded settings are validated."""
        monkeypatch.setenv("BOARDCLUSTER__CLUSTERING__SIMILARITY_THRESHOLD", "1.5")

        with pytest.raises(ConfigurationError):
            load_settings(DEFAULT_CONFIG)

    def test_invalid_yaml(self, tmp_path):
        """Unparseable YAML is a configuration error."""
        path = tmp_path / "bad.yaml"
        path.write_text("clustering: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_get_settings_cached(self, config_file):
        """get_settings loads once until reset."""
        first = get_settings(str(config_file))

        assert get_settings(str(config_file)) is first
        reset_settings()
        assert get_settings(str(config_file)) is not first


class TestBuildService:
    """Tests for wiring adapters from settings."""

    def test_lexical_default(self):
        """The lexical adapter needs no provider."""
        service = build_service(load_settings(DEFAULT_CONFIG))

        assert isinstance(service.engine.semantic_provider, LexicalSemanticSimilarity)

    def test_embedding_adapter(self, mock_embedding):
        """The embedding adapter wraps the given provider."""
        settings = load_settings(DEFAULT_CONFIG)
        settings.semantic.adapter = "embedding"

        service = build_service(settings, embedding=mock_embedding)

        assert isinstance(service.engine.semantic_provider, EmbeddingSemanticSimilarity)

    def test_embedding_without_provider(self):
        """Selecting embeddings without a provider fails."""
        settings = load_settings(DEFAULT_CONFIG)
        settings.semantic.adapter = "embedding"

        with pytest.raises(ConfigurationError):
            build_service(settings)

    def test_unknown_adapter(self):
        """Unknown semantic adapters are rejected."""
        settings = load_settings(DEFAULT_CONFIG)
        settings.semantic.adapter = "telepathy"

        with pytest.raises(ConfigurationError):
            build_service(settings)

    def test_custom_dictionary_path(self, tmp_path, ux_infra_cards):
        """labeling.dictionary_path swaps the label vocabulary."""
        path = tmp_path / "labels.yaml"
        path.write_text("tags:\n  ux: Experience\n  infra: Platform\n", encoding="utf-8")
        settings = load_settings(DEFAULT_CONFIG)
        settings.labeling.dictionary_path = str(path)
        settings.clustering.weight_strength = 0.0
        settings.clustering.weight_semantic = 0.0
        settings.clustering.weight_content = 0.0
        settings.clustering.weight_tag = 1.0

        result = build_service(settings).cluster(ux_infra_cards, config=settings.clustering)

        assert sorted(c.label.text for c in result.clusters) == ["Experience", "Platform"]
