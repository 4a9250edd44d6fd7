"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from boardcluster.cli import app, load_board
from boardcluster.domain.errors import InputError

DEFAULT_CONFIG = str(Path(__file__).resolve().parent.parent / "config" / "default.yaml")

runner = CliRunner()


@pytest.fixture
def board_file(tmp_path, ux_infra_cards):
    path = tmp_path / "board.json"
    cards = []
    for card in ux_infra_cards:
        d = card.to_dict()
        d["columnType"] = d.pop("column_type")
        cards.append(d)
    path.write_text(json.dumps({"cards": cards, "edges": []}), encoding="utf-8")
    return path


def _invoke(*args):
    return runner.invoke(app, ["--config", DEFAULT_CONFIG, *args])


class TestLoadBoard:
    """Tests for reading board exports."""

    def test_cards_and_edges(self, board_file):
        """A board export yields cards and no nodes."""
        cards, nodes, edges = load_board(board_file)

        assert len(cards) == 6
        assert cards[0].column_type == "ideas"
        assert nodes is None
        assert edges == []

    def test_bare_list(self, tmp_path):
        """A JSON list is read as the card list."""
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([{"id": "x", "title": "One"}]), encoding="utf-8")

        cards, _, _ = load_board(path)

        assert [c.id for c in cards] == ["x"]

    @pytest.mark.parametrize("text", ["{not json", '{"edges": []}', '{"cards": [{"title": "no id"}]}'])
    def test_malformed(self, tmp_path, text):
        """Unreadable exports raise InputError."""
        path = tmp_path / "bad.json"
        path.write_text(text, encoding="utf-8")

        with pytest.raises(InputError):
            load_board(path)


class TestClusterCommand:
    """Tests for `boardcluster cluster`."""

    def test_json_export(self, board_file, tmp_path):
        """--format json writes the full result."""
        out = tmp_path / "result.json"

        result = _invoke("cluster", str(board_file), "--threshold", "0.2", "--format", "json", "--output", str(out))

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert sorted(c["label"]["text"] for c in data["clusters"]) == ["Infrastructure", "UX Research"]
        assert data["parameters"]["similarity_threshold"] == 0.2

    def test_csv_to_stdout(self, board_file):
        """--format csv prints one row per card."""
        result = _invoke("cluster", str(board_file), "--threshold", "0.2", "--format", "csv")

        assert result.exit_code == 0, result.output
        rows = [line for line in result.output.splitlines() if line.count(",") == 4]
        assert rows[0] == "node_id,cluster_id,cluster_label,is_outlier,membership_strength"
        assert len(rows) == 7

    def test_table(self, board_file):
        """The default table output ends with a summary line."""
        result = _invoke("cluster", str(board_file), "--threshold", "0.2")

        assert result.exit_code == 0, result.output
        assert "Outliers: 0" in result.output

    def test_memberships_flag(self, board_file, tmp_path):
        """--memberships adds memberships to the export."""
        out = tmp_path / "result.json"

        result = _invoke("cluster", str(board_file), "--memberships", "--format", "json", "-o", str(out))

        assert result.exit_code == 0, result.output
        assert len(json.loads(out.read_text(encoding="utf-8"))["memberships"]) == 6

    @pytest.mark.parametrize("algorithm", ["hierarchical", "kmeans"])
    def test_bad_algorithm_exits_nonzero(self, board_file, algorithm):
        """Unsupported or unknown algorithms exit with status 1."""
        result = _invoke("cluster", str(board_file), "--algorithm", algorithm)

        assert result.exit_code == 1

    def test_malformed_board_exits_nonzero(self, tmp_path):
        """A malformed board exits with status 1."""
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        assert _invoke("cluster", str(path)).exit_code == 1


class TestSimilarityCommand:
    """Tests for `boardcluster similarity`."""

    def test_explains_pair(self, board_file):
        """The overall score and explanation are printed."""
        result = _invoke("similarity", str(board_file), "c0", "c1")

        assert result.exit_code == 0, result.output
        assert "Overall:" in result.output

    def test_missing_card(self, board_file):
        """Unknown card ids exit with status 1."""
        assert _invoke("similarity", str(board_file), "c0", "zz").exit_code == 1
