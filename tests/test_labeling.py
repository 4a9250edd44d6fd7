"""Tests for cluster label generation."""

import pytest

from boardcluster.domain.errors import ConfigurationError
from boardcluster.domain.models import SmartCluster
from boardcluster.services.labeling import LabelDictionaries, LabelGenerator
from tests.conftest import make_card


def _cluster(cards, cluster_id="k1"):
    return SmartCluster(id=cluster_id, node_ids=[c.id for c in cards])


def _label(generator, cards):
    return generator.generate(_cluster(cards), cards)


class TestStrategies:
    """Tests for each labelling strategy in priority order."""

    def test_shared_tag(self, label_generator, ux_infra_cards):
        """A tag on every card maps through the tag dictionary."""
        label = _label(label_generator, ux_infra_cards[:3])

        assert label.text == "UX Research"
        assert label.strategy == "tag"
        assert label.label_confidence == pytest.approx(0.95)

    def test_tag_below_coverage_ignored(self, label_generator):
        """A tag on too few cards does not name the cluster."""
        cards = [
            make_card("a", "Deploy pipeline", tags=["ops"]),
            make_card("b", "Deploy pipeline", tags=["ops"]),
            make_card("c", "Deploy pipeline"),
            make_card("d", "Deploy pipeline"),
            make_card("e", "Deploy pipeline"),
        ]

        label = _label(label_generator, cards)

        assert label.strategy != "tag"

    def test_bigram_dictionary(self, label_generator):
        """The top two keywords hit the bigram dictionary in either order."""
        cards = [
            make_card("a", "User interview notes"),
            make_card("b", "User interview recording"),
            make_card("c", "Interview user panel"),
        ]

        label = _label(label_generator, cards)

        assert label.text == "User Interviews"
        assert label.label_confidence == pytest.approx(0.75)
        assert label.alternatives == ["Interviews", "Notes", "Recording"]

    def test_bigram_join(self, label_generator):
        """Unknown keyword pairs are joined with an ampersand."""
        cards = [
            make_card("a", "Latency budget"),
            make_card("b", "Latency budget review"),
        ]

        label = _label(label_generator, cards)

        assert label.text == "Latency & Budget"
        assert label.strategy == "bigram"

    def test_cooccurrence(self, label_generator):
        """A keyword shared across card pairs wins when the top pair is unusable."""
        cards = [make_card(f"j{i}", "設計 レビュー") for i in range(3)]

        label = _label(label_generator, cards)

        assert label.text == "レビュー"
        assert label.strategy == "cooccurrence"
        assert label.label_confidence == pytest.approx(0.7)

    def test_top_keyword(self, label_generator):
        """A single keyword becomes the label."""
        cards = [make_card("a", "Caching"), make_card("b", "caching")]

        label = _label(label_generator, cards)

        assert label.text == "Caching"
        assert label.strategy == "keyword"
        assert label.label_confidence == pytest.approx(0.6)

    @pytest.mark.parametrize(
        "size, text, confidence",
        [
            (2, "Small Group (2 cards)", 0.2),
            (3, "Related Ideas (3 cards)", 0.3),
            (6, "Major Theme (6 cards)", 0.4),
        ],
    )
    def test_size_tiers(self, label_generator, size, text, confidence):
        """Clusters with nothing to say are named by size."""
        cards = [make_card(f"q{i}", "?") for i in range(size)]

        label = _label(label_generator, cards)

        assert label.text == text
        assert label.label_confidence == pytest.approx(confidence)


class TestFallback:
    """Tests for the never-fail guarantee."""

    def test_no_cards(self, label_generator):
        """A cluster without card data gets the fallback label."""
        label = label_generator.generate(SmartCluster(id="x"), [])

        assert label.text == "Cluster x"
        assert label.label_confidence == pytest.approx(0.1)

    def test_error_returns_fallback(self, label_generator, ux_infra_cards, monkeypatch):
        """An exception inside labelling degrades to the fallback."""
        def boom(*args, **kwargs):
            raise RuntimeError("broken extractor")

        monkeypatch.setattr(label_generator.extractor, "extract", boom)
        label = _label(label_generator, ux_infra_cards[:3])

        assert label.strategy == "fallback"
        assert label.label_confidence == pytest.approx(0.1)

    def test_labels_fit_length(self, label_generator):
        """Labels never exceed 25 characters."""
        cards = [
            make_card("a", "Internationalization accessibility"),
            make_card("b", "Internationalization accessibility"),
        ]

        label = _label(label_generator, cards)

        assert len(label.text) <= 25

    def test_label_all(self, label_generator, ux_infra_cards):
        """Every cluster is labelled in place."""
        clusters = [_cluster(ux_infra_cards[:3], "a"), _cluster(ux_infra_cards[3:], "b")]
        label_generator.label_all(clusters, {c.id: c for c in ux_infra_cards})

        assert [c.label.text for c in clusters] == ["UX Research", "Infrastructure"]


class TestDictionaries:
    """Tests for dictionary loading and tag casing."""

    @pytest.mark.parametrize(
        "tag, expected",
        [("k8s", "K8S"), ("kanban", "Kanban"), ("xy", None), ("UX", "UX Research")],
    )
    def test_tag_label(self, dictionaries, tag, expected):
        """Unmapped tags are cased by length; very short ones are dropped."""
        assert dictionaries.tag_label(tag) == expected

    def test_custom_dictionary(self, tmp_path):
        """A YAML file replaces the packaged vocabulary."""
        path = tmp_path / "labels.yaml"
        path.write_text("tags:\n  ux: Experience\nbigrams:\n  foo,bar: Foobar\n", encoding="utf-8")

        d = LabelDictionaries.load(path)

        assert d.tag_label("ux") == "Experience"
        assert d.bigram_label("bar", "foo") == "Foobar"
        assert LabelGenerator(d).generate(
            SmartCluster(id="k", node_ids=["a"]), [make_card("a", "x", tags=["ux"])]
        ).text == "Experience"

    def test_missing_file(self, tmp_path):
        """A missing dictionary file is a configuration error."""
        with pytest.raises(ConfigurationError):
            LabelDictionaries.load(tmp_path / "nope.yaml")
