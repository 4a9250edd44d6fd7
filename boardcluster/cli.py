"""Command-line interface for boardcluster.

Commands:
- cluster: Cluster, label and score the cards of a board export
- similarity: Explain the similarity between two cards of a board
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from boardcluster.domain.errors import BoardClusterError, InputError
from boardcluster.domain.models import Card, ClusteringConfig, ClusteringResult, NetworkEdge, NetworkNode

app = typer.Typer(help="boardcluster: discover and label groups of related board cards")
console = Console()


class OutputFormat(str, Enum):
    table = "table"
    json = "json"
    csv = "csv"


def load_board(path: Path) -> tuple[list[Card], list[NetworkNode] | None, list[NetworkEdge]]:
    """Read a board export: ``{"cards": [...], "nodes": [...], "edges": [...]}``.

    A bare JSON list is read as the card list.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data: Any = json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, list):
        data = {"cards": data}
    if not isinstance(data, dict) or not isinstance(data.get("cards"), list):
        raise InputError(f"{path} has no 'cards' list")

    try:
        cards = [Card.from_dict(c) for c in data["cards"]]
        nodes = [NetworkNode.from_dict(n) for n in data["nodes"]] if data.get("nodes") else None
        edges = [NetworkEdge.from_dict(e) for e in data.get("edges") or []]
    except (KeyError, TypeError, ValueError) as e:
        raise InputError(f"Malformed board export {path}: {e}") from e
    return cards, nodes, edges


@app.callback()
def main(
    ctx: typer.Context,
    config: str = typer.Option("config/default.yaml", "--config", "-c", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """boardcluster: discover and label groups of related board cards."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@app.command()
def cluster(
    ctx: typer.Context,
    board: Path = typer.Argument(..., exists=True, dir_okay=False, help="Board export JSON"),
    algorithm: Optional[str] = typer.Option(None, help="dbscan, hdbscan or community"),
    min_size: Optional[int] = typer.Option(None, help="Minimum cluster size"),
    max_size: Optional[int] = typer.Option(None, help="Maximum cluster size"),
    threshold: Optional[float] = typer.Option(None, help="Similarity threshold"),
    memberships: bool = typer.Option(False, help="Include secondary memberships"),
    fmt: OutputFormat = typer.Option(OutputFormat.table, "--format", "-f", help="Output format"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the export here"),
):
    """Cluster, label and score the cards of a BOARD export."""
    from boardcluster.config import build_service, load_settings
    from boardcluster.services.export import to_csv, to_json

    overrides: dict[str, Any] = {
        "algorithm": algorithm,
        "min_cluster_size": min_size,
        "max_cluster_size": max_size,
        "similarity_threshold": threshold,
    }
    if memberships:
        overrides["include_memberships"] = True

    try:
        settings = load_settings(ctx.obj["config"])
        config = ClusteringConfig.from_dict(overrides, base=settings.clustering)
        cards, nodes, edges = load_board(board)
        result = build_service(settings).cluster(cards, nodes, edges, config)
    except BoardClusterError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if fmt is OutputFormat.table:
        _print_result(result)
        return

    text = to_json(result) if fmt is OutputFormat.json else to_csv(result)
    if output is not None:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Wrote {fmt.value} export to {output}[/green]")
    else:
        typer.echo(text)


@app.command()
def similarity(
    ctx: typer.Context,
    board: Path = typer.Argument(..., exists=True, dir_okay=False, help="Board export JSON"),
    card_a: str = typer.Argument(..., help="First card id"),
    card_b: str = typer.Argument(..., help="Second card id"),
):
    """Explain how similar two cards of a BOARD are."""
    from boardcluster.config import build_service, load_settings

    try:
        settings = load_settings(ctx.obj["config"])
        cards, _, _ = load_board(board)
        by_id = {c.id: c for c in cards}
        missing = [cid for cid in (card_a, card_b) if cid not in by_id]
        if missing:
            raise InputError(f"Card not found: {', '.join(missing)}")
        score = build_service(settings).engine.similarity(by_id[card_a], by_id[card_b])
    except BoardClusterError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{card_a} ↔ {card_b}")
    table.add_column("Component")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    for name, value in score.components.to_dict().items():
        table.add_row(name, f"{value:.3f}", f"{getattr(score.weights, name):.2f}")
    console.print(table)
    console.print(f"[bold]Overall:[/bold] {score.overall_score:.3f}  "
                  f"[bold]Confidence:[/bold] {score.confidence:.3f}")
    console.print(f"[dim]{score.explanation}[/dim]")


def _print_result(result: ClusteringResult) -> None:
    table = Table(title=f"Clusters ({result.algorithm.value})")
    table.add_column("Cluster")
    table.add_column("Label")
    table.add_column("Size", justify="right")
    table.add_column("Cohesion", justify="right")
    table.add_column("Label conf.", justify="right")
    table.add_column("Top tags")

    for c in result.clusters:
        table.add_row(
            c.id,
            c.label.text if c.label else "",
            str(c.size),
            f"{c.cohesion:.3f}",
            f"{c.label.label_confidence:.2f}" if c.label else "",
            ", ".join(c.dominant_tags),
        )
    console.print(table)

    q = result.quality
    console.print(
        f"Outliers: {len(result.outliers)}  "
        f"Coverage: {q.coverage_ratio:.0%}  "
        f"Avg cohesion: {q.avg_cohesion:.3f}"
    )


if __name__ == "__main__":
    app()
