"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console backed by StringIO; the caller
extracts the text via ``get_output(console)``. Renderers are dispatched
by ``result.op`` in :func:`render_result`. Unknown ops fall through to a
generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from kgctl.output.console import create_console, get_output, style_for_label

if TYPE_CHECKING:
    from rich.console import Console

    from kgctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: one id per line where there are ids."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    if result.op == "visualize":
        return str(result.data.get("content", "")).rstrip("\n")

    rows = result.data.get("matches") or result.data.get("items")
    if rows and isinstance(rows, list):
        return "\n".join(i for i in (_extract_id(row) for row in rows) if i)

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(row: Any) -> str:
    """Id of a list item or the seed node id of a query match."""
    if not isinstance(row, dict):
        return ""
    for key in ("id", "path"):
        val = row.get(key)
        if val is not None:
            return str(val)
    nodes = row.get("nodes")
    if nodes and isinstance(nodes, list) and isinstance(nodes[0], dict):
        return str(nodes[0].get("id", ""))
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="kg.ok")
    op = Text(f"  {result.op}", style="kg.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any, *, indent: int = 2) -> None:
    """Print a single indented key-value field."""
    k = Text(f"{' ' * indent}{key}: ", style="kg.key")
    if key == "id" or key.endswith("_id") or key == "identifier":
        v = Text(str(value), style="kg.id")
    elif key in ("path", "source"):
        v = Text(str(value), style="kg.path")
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _format_score(value: Any) -> str:
    return f"{float(value):.4f}" if isinstance(value, (int, float)) else str(value)


def _node_name(node: dict[str, Any]) -> str:
    props = node.get("properties") or {}
    return str(props.get("name") or node.get("id", ""))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="kg.error")
    op = Text(f"  {result.op}", style="kg.op")
    sep = Text(" — ")
    console.print(label, op, sep, msg)
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}", markup=False)


# ── Ingest renderers ──────────────────────────────────────────────────


def _render_document(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render process_document: counts, plus the extracted entities when verbose."""
    _status_line(console, result)
    d = result.data
    for key in ("path", "entity_count", "relation_count"):
        if key in d:
            _field(console, key, d[key])

    entities = (d.get("result") or {}).get("entities", [])
    if verbose and entities:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("ID", style="kg.id", no_wrap=True)
        table.add_column("Name", style="kg.name")
        table.add_column("Type")
        table.add_column("Confidence", style="kg.score", justify="right")
        for entity in entities:
            table.add_row(
                str(entity.get("id", "")),
                str(entity.get("name", "")),
                Text(str(entity.get("type", "")), style=style_for_label(entity.get("type", ""))),
                _format_score(entity.get("confidence", "")),
            )
        console.print()
        console.print(table)


def _render_batch(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render process_documents as a per-file table."""
    _status_line(console, result)
    d = result.data
    items = d.get("items", [])
    _field(console, "processed", d.get("count", len(items)))
    _field(console, "failed", len(d.get("failed", [])))
    if items:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Path", style="kg.path")
        table.add_column("Entities", justify="right")
        table.add_column("Relations", justify="right")
        for item in items:
            table.add_row(
                str(item.get("path", "")),
                str(item.get("entity_count", 0)),
                str(item.get("relation_count", 0)),
            )
        console.print()
        console.print(table)


# ── Query renderers ───────────────────────────────────────────────────


def _render_matches(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render query results as a ranked table of matches."""
    d = result.data
    matches = d.get("matches", [])

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Score", style="kg.score", justify="right")
    table.add_column("Seed", style="kg.id", no_wrap=True)
    table.add_column("Name", style="kg.name")
    table.add_column("Label")
    table.add_column("Nodes", justify="right")
    table.add_column("Edges", justify="right")
    if verbose:
        table.add_column("Context", style="dim")

    for rank, match in enumerate(matches, start=1):
        nodes = match.get("nodes", [])
        seed = nodes[0] if nodes else {}
        label = str(seed.get("label", ""))
        row: list[Any] = [
            str(rank),
            _format_score(match.get("score", 0.0)),
            str(seed.get("id", "")),
            _node_name(seed) if seed else "",
            Text(label, style=style_for_label(label)),
            str(len(nodes)),
            str(len(match.get("edges", []))),
        ]
        if verbose:
            row.append(str(match.get("context", "")))
        table.add_row(*row)

    console.print(table)
    count = d.get("count", len(matches))
    total = d.get("total_results", count)
    suffix = f" of {total}" if total != count else ""
    console.print(f"\n{count}{suffix} matches ({d.get('strategy', result.op)})", markup=False)
    if verbose:
        _field(console, "confidence", _format_score(d.get("confidence", 0.0)))
        _field(console, "execution_time_ms", f"{d.get('execution_time_ms', 0.0):.2f}")


def _render_query_stats(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    _query_stats_fields(console, result.data, indent=2)


def _query_stats_fields(console: Console, data: dict[str, Any], *, indent: int) -> None:
    _field(console, "total_queries", data.get("total_queries", 0), indent=indent)
    _field(
        console,
        "average_execution_time_ms",
        f"{data.get('average_execution_time_ms', 0.0):.2f}",
        indent=indent,
    )
    _field(console, "success_rate", f"{data.get('success_rate', 1.0):.2f}", indent=indent)
    _field(console, "cache_hits", data.get("cache_hits", 0), indent=indent)
    for pattern in data.get("common_patterns", []):
        _field(console, str(pattern.get("pattern", "")), pattern.get("count", 0), indent=indent + 2)


# ── Graph renderers ───────────────────────────────────────────────────


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render combined graph/persistence/query stats as three sections."""
    _status_line(console, result)
    d = result.data
    for section in ("graph", "persistence"):
        values = d.get(section) or {}
        console.print(Text(f"  {section}:", style="kg.op"))
        for key, value in values.items():
            _field(console, key, "-" if value is None else value, indent=4)
    console.print(Text("  query:", style="kg.op"))
    _query_stats_fields(console, d.get("query") or {}, indent=4)


def _render_export(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render export_graph / import_graph counts and paths."""
    _status_line(console, result)
    d = result.data
    for key in ("identifier", "source", "path", "node_count", "edge_count"):
        if d.get(key) is not None:
            _field(console, key, d[key])


def _render_graph_list(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="kg.id", no_wrap=True)
    table.add_column("Active")
    for item in items:
        table.add_row(str(item.get("id", "")), "*" if item.get("active") else "")
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} graphs")


def _render_visualization(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    """Print the rendered graph verbatim so it can be piped to a file."""
    console.print(Text(str(result.data.get("content", ""))), soft_wrap=True, end="")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Ingest
    "process_document": _render_document,
    "process_documents": _render_batch,
    # Query
    "query": _render_matches,
    "semantic_search": _render_matches,
    "structured_search": _render_matches,
    "hybrid_search": _render_matches,
    "query_stats": _render_query_stats,
    "clear_cache": _render_generic,
    # Graph
    "stats": _render_stats,
    "export_graph": _render_export,
    "import_graph": _render_export,
    "clear": _render_generic,
    "list_graphs": _render_graph_list,
    "delete_graph": _render_generic,
    "visualize": _render_visualization,
}
