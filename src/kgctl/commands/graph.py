"""Command group: snapshot management, stats, and visualisation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from kgctl.commands._base import KgGroup
from kgctl.services.graph import VISUALIZE_FORMATS, GraphService

if TYPE_CHECKING:
    from kgctl.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  kgctl graph stats
  kgctl graph export --output backup.json
  kgctl graph import backup.json
  kgctl graph visualize --format dot --output graph.dot
  kgctl graph list
  kgctl graph clear --yes"""


@click.group(cls=KgGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Manage the knowledge graph and its snapshots."""


@graph.command(
    examples="""\
  kgctl graph stats
  kgctl --json graph stats"""
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Show graph, snapshot, and query statistics."""
    app.emit(GraphService(app.workspace).stats())


@graph.command(
    name="export",
    examples="""\
  kgctl --json graph export > graph.json
  kgctl graph export --output backup.json""",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Copy the saved snapshot file here.",
)
@click.pass_obj
def export_cmd(app: AppContext, output: Path | None) -> None:
    """Export the current graph."""
    app.emit(GraphService(app.workspace).export_graph(output))


@graph.command(
    name="import",
    examples="""\
  kgctl graph import backup.json""",
)
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_obj
def import_cmd(app: AppContext, path: Path) -> None:
    """Replace the current graph with a snapshot file.

    The file is validated first; an invalid file leaves the graph unchanged.
    """
    app.emit(GraphService(app.workspace).import_graph(path))


@graph.command(
    examples="""\
  kgctl graph clear
  kgctl graph clear --yes"""
)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def clear(app: AppContext, yes: bool) -> None:
    """Remove every node and edge and save the empty graph."""
    if not yes:
        click.confirm("Delete every node and edge in the graph?", abort=True)
    app.emit(GraphService(app.workspace).clear())


@graph.command(
    name="list",
    examples="""\
  kgctl graph list
  kgctl -q graph list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List saved snapshots."""
    app.emit(GraphService(app.workspace).list_graphs())


@graph.command(
    examples="""\
  kgctl graph delete old-backup"""
)
@click.argument("identifier")
@click.pass_obj
def delete(app: AppContext, identifier: str) -> None:
    """Delete a saved snapshot. The loaded graph is not affected."""
    app.emit(GraphService(app.workspace).delete_graph(identifier))


@graph.command(
    examples="""\
  kgctl graph visualize
  kgctl graph visualize --format summary
  kgctl graph visualize --format json --output graph.json
  kgctl -q graph visualize | dot -Tsvg > graph.svg"""
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(VISUALIZE_FORMATS),
    default="dot",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the rendering to a file instead of stdout.",
)
@click.pass_obj
def visualize(app: AppContext, fmt: str, output: Path | None) -> None:
    """Render the graph as Graphviz DOT, D3 JSON, or a text summary."""
    result = GraphService(app.workspace).visualize(fmt)
    if output is not None and result.ok:
        try:
            output.write_text(result.data["content"], encoding="utf-8")
        except OSError as exc:
            raise click.ClickException(f"Cannot write {output}: {exc}") from exc
        click.echo(f"Wrote {fmt} to {output}", err=True)
        return
    app.emit(result)
