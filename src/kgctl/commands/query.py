"""Command group: semantic, structured, and hybrid graph queries."""

from __future__ import annotations

import json
from typing import IO, TYPE_CHECKING, Any

import click

from kgctl.commands._base import KgGroup
from kgctl.domain.queries import (
    EdgePattern,
    NodePattern,
    QueryContext,
    SemanticQueryOptions,
    StructuredPatterns,
)
from kgctl.services.query import QueryService

if TYPE_CHECKING:
    from kgctl.commands._context import AppContext

_QUERY_EXAMPLES = """\
  kgctl query semantic "alice acme"
  kgctl query structured --label person
  kgctl query structured --label person --edge-label WORKS_AT
  kgctl query hybrid "acme" --label organization --strategy parallel
  kgctl query run query.json
  kgctl query stats
  kgctl query clear-cache"""


def _parse_value(raw: str) -> Any:
    """JSON literal if it parses (numbers, booleans, null), else the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _parse_props(props: tuple[str, ...]) -> dict[str, Any] | None:
    if not props:
        return None
    parsed: dict[str, Any] = {}
    for item in props:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--prop")
        parsed[key] = _parse_value(value)
    return parsed


def _build_patterns(
    label: str | None,
    node_id: str | None,
    props: tuple[str, ...],
    edge_labels: tuple[str, ...],
    any_edge: bool,
) -> StructuredPatterns:
    node = NodePattern(id=node_id, label=label, properties=_parse_props(props))
    edges = [EdgePattern(label=edge_label) for edge_label in edge_labels]
    if any_edge:
        edges.append(EdgePattern())
    return StructuredPatterns(nodes=[node], edges=edges)


def _build_context(
    max_results: int | None, min_confidence: float | None, sources: bool
) -> QueryContext | None:
    if max_results is None and min_confidence is None and not sources:
        return None
    return QueryContext(
        max_results=max_results,
        min_confidence=min_confidence,
        include_sources=sources or None,
    )


def _context_options(func: Any) -> Any:
    """Attach the post-processing options shared by every search command."""
    func = click.option(
        "--sources", is_flag=True, help="Include source documents for each match."
    )(func)
    func = click.option(
        "--min-confidence", type=float, default=None, help="Drop matches scoring below this."
    )(func)
    func = click.option(
        "--max-results", type=click.IntRange(min=0), default=None, help="Max matches."
    )(func)
    return func


def _pattern_options(func: Any) -> Any:
    """Attach node/edge pattern options for structured and hybrid queries."""
    func = click.option(
        "--any-edge", is_flag=True, help="Include every edge touching a matched node."
    )(func)
    func = click.option(
        "--edge-label", "edge_labels", multiple=True, help="Edge label to include (repeatable)."
    )(func)
    func = click.option(
        "--prop", "props", multiple=True, metavar="KEY=VALUE", help="Node property (repeatable)."
    )(func)
    func = click.option("--id", "node_id", default=None, help="Node id.")(func)
    func = click.option("--label", default=None, help="Node label (entity type).")(func)
    return func


@click.group(cls=KgGroup, examples=_QUERY_EXAMPLES)
@click.pass_obj
def query(app: AppContext) -> None:
    """Query the knowledge graph."""


@query.command(
    examples="""\
  kgctl query run query.json
  echo '{"type": "semantic", "text": "acme"}' | kgctl query run -
  kgctl --json query run hybrid.json"""
)
@click.argument("source", type=click.File("r"))
@click.pass_obj
def run(app: AppContext, source: IO[str]) -> None:
    """Execute a query given as JSON (a file path, or - for stdin).

    The payload's "type" selects semantic, structured, or hybrid.
    """
    try:
        payload = json.load(source)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="SOURCE") from exc
    if not isinstance(payload, dict):
        raise click.BadParameter("query must be a JSON object", param_hint="SOURCE")
    app.emit(QueryService(app.workspace).query(payload))


@query.command(
    examples="""\
  kgctl query semantic "acme"
  kgctl query semantic "alice acme" --threshold 0.4 --max-distance 1
  kgctl query semantic "acme" --max-results 5 --sources"""
)
@click.argument("text")
@click.option(
    "--threshold", type=float, default=0.5, show_default=True, help="Minimum relevance (exclusive)."
)
@click.option(
    "--max-distance",
    type=click.IntRange(min=0),
    default=2,
    show_default=True,
    help="Traversal hops from each seed.",
)
@_context_options
@click.pass_obj
def semantic(
    app: AppContext,
    text: str,
    threshold: float,
    max_distance: int,
    max_results: int | None,
    min_confidence: float | None,
    sources: bool,
) -> None:
    """Find nodes whose properties mention the query terms, with their neighbourhood."""
    options = SemanticQueryOptions(similarity_threshold=threshold, max_distance=max_distance)
    context = _build_context(max_results, min_confidence, sources)
    app.emit(QueryService(app.workspace).semantic_search(text, options=options, context=context))


@query.command(
    examples="""\
  kgctl query structured --label person
  kgctl query structured --prop name=Alice --edge-label WORKS_AT
  kgctl query structured --id ent:acme --any-edge"""
)
@_pattern_options
@_context_options
@click.pass_obj
def structured(
    app: AppContext,
    label: str | None,
    node_id: str | None,
    props: tuple[str, ...],
    edge_labels: tuple[str, ...],
    any_edge: bool,
    max_results: int | None,
    min_confidence: float | None,
    sources: bool,
) -> None:
    """Match nodes by id, label, and properties."""
    patterns = _build_patterns(label, node_id, props, edge_labels, any_edge)
    context = _build_context(max_results, min_confidence, sources)
    app.emit(QueryService(app.workspace).structured_search(patterns, context=context))


@query.command(
    examples="""\
  kgctl query hybrid "acme" --label organization
  kgctl query hybrid "alice" --label person --strategy parallel
  kgctl query hybrid "acme" --label organization --strategy sequential --threshold 0.3"""
)
@click.argument("text")
@click.option(
    "--strategy",
    type=click.Choice(["weighted", "parallel", "sequential"]),
    default="weighted",
    show_default=True,
    help="weighted scores 0.6/0.4; parallel and sequential score 0.5/0.5.",
)
@click.option("--threshold", type=float, default=0.5, show_default=True)
@click.option("--max-distance", type=click.IntRange(min=0), default=2, show_default=True)
@_pattern_options
@_context_options
@click.pass_obj
def hybrid(
    app: AppContext,
    text: str,
    strategy: str,
    threshold: float,
    max_distance: int,
    label: str | None,
    node_id: str | None,
    props: tuple[str, ...],
    edge_labels: tuple[str, ...],
    any_edge: bool,
    max_results: int | None,
    min_confidence: float | None,
    sources: bool,
) -> None:
    """Combine a semantic and a structured query into one ranking."""
    svc = QueryService(app.workspace)
    result = svc.hybrid_search(
        text,
        _build_patterns(label, node_id, props, edge_labels, any_edge),
        strategy=strategy,  # type: ignore[arg-type]
        options=SemanticQueryOptions(similarity_threshold=threshold, max_distance=max_distance),
        context=_build_context(max_results, min_confidence, sources),
    )
    app.emit(result)


@query.command(
    examples="""\
  kgctl query stats
  kgctl --json query stats"""
)
@click.pass_obj
def stats(app: AppContext) -> None:
    """Show query counters for this session."""
    app.emit(QueryService(app.workspace).stats())


@query.command(
    name="clear-cache",
    examples="""\
  kgctl query clear-cache""",
)
@click.pass_obj
def clear_cache(app: AppContext) -> None:
    """Drop cached query results."""
    app.emit(QueryService(app.workspace).clear_cache())
