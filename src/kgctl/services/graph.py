"""GraphService — snapshot management, statistics, and visualisation.

Covers export/import of the working snapshot, listing and deleting named
snapshots, combined store/persistence/query statistics, wiping the graph,
and rendering it as Graphviz DOT, D3 JSON, or a plain-text summary.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from kgctl.domain.errors import KgError
from kgctl.services._helpers import count_by, dump
from kgctl.services.base import BaseService
from kgctl.services.result import ServiceResult, error_result, failure

VISUALIZE_FORMATS: tuple[str, ...] = ("dot", "json", "summary")

_NODE_COLORS: dict[str, str] = {
    "person": "#AED6F1",
    "organization": "#F5B7B1",
    "location": "#A2D9CE",
    "project": "#D7BDE2",
    "technology": "#FAD7A0",
}
_DEFAULT_COLOR = "#F2F3F4"


class GraphService(BaseService):
    """Handles whole-graph operations on the working snapshot."""

    # ------------------------------------------------------------------
    # export / import
    # ------------------------------------------------------------------

    def export_graph(self, path: Path | None = None) -> ServiceResult:
        """Return the in-memory graph; with *path*, also copy the snapshot file there.

        The store is saved first so the copied file matches what is returned.
        """
        warnings = self._start_warnings()
        ws = self._workspace
        snapshot = ws.store.get_graph_data()
        data: dict[str, Any] = {
            "node_count": len(snapshot.nodes),
            "edge_count": len(snapshot.edges),
            "path": None,
        }
        if path is not None:
            try:
                ws.save()
                ws.persistence.export_graph(ws.identifier, path)
            except KgError as exc:
                return error_result("export_graph", exc, warnings=warnings)
            data["path"] = str(path)
        data["graph"] = dump(snapshot)
        return ServiceResult(ok=True, op="export_graph", data=data, warnings=warnings)

    def import_graph(self, path: Path) -> ServiceResult:
        """Replace the working snapshot with the graph file at *path*.

        The file is validated before anything is written; on failure the
        existing snapshot and the in-memory graph are left untouched.
        """
        warnings = self._start_warnings()
        ws = self._workspace
        try:
            snapshot = ws.persistence.import_graph(path, ws.identifier)
        except KgError as exc:
            return error_result("import_graph", exc, warnings=warnings)

        ws.store.load(snapshot)
        self._dispatch_event(
            "post_import",
            {
                "identifier": ws.identifier,
                "source": str(path),
                "node_count": len(snapshot.nodes),
                "edge_count": len(snapshot.edges),
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op="import_graph",
            data={
                "identifier": ws.identifier,
                "source": str(path),
                "node_count": len(snapshot.nodes),
                "edge_count": len(snapshot.edges),
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # stats / clear
    # ------------------------------------------------------------------

    def stats(self) -> ServiceResult:
        """Store, persisted-snapshot, and query-engine statistics together."""
        warnings = self._start_warnings()
        ws = self._workspace
        try:
            persistence_stats = ws.persistence.get_stats()
        except KgError as exc:
            return error_result("stats", exc, warnings=warnings)
        return ServiceResult(
            ok=True,
            op="stats",
            data={
                "graph": dump(ws.store.get_stats()),
                "persistence": dump(persistence_stats),
                "query": dump(ws.query.get_stats()),
            },
            warnings=warnings,
        )

    def clear(self) -> ServiceResult:
        """Wipe the in-memory graph, its persisted snapshot, and the query cache."""
        warnings = self._start_warnings()
        ws = self._workspace
        ws.store.clear()
        ws.query.clear_cache()
        try:
            ws.save()
        except KgError as exc:
            return error_result("clear", exc, warnings=warnings)
        self._dispatch_event("post_clear", {"identifier": ws.identifier}, warnings)
        return ServiceResult(
            ok=True, op="clear", data={"identifier": ws.identifier}, warnings=warnings
        )

    # ------------------------------------------------------------------
    # snapshot management
    # ------------------------------------------------------------------

    def list_graphs(self) -> ServiceResult:
        ws = self._workspace
        items = [
            {"id": identifier, "active": identifier == ws.identifier}
            for identifier in ws.persistence.list_graphs()
        ]
        return ServiceResult(
            ok=True, op="list_graphs", data={"count": len(items), "items": items}
        )

    def delete_graph(self, identifier: str) -> ServiceResult:
        """Delete a persisted snapshot. The in-memory graph is unaffected."""
        warnings = self._start_warnings()
        try:
            self._workspace.persistence.delete_graph(identifier)
        except KgError as exc:
            return error_result("delete_graph", exc, warnings=warnings)
        except ValueError as exc:
            return failure(
                "delete_graph",
                "INVALID_IDENTIFIER",
                str(exc),
                detail={"identifier": identifier},
                warnings=warnings,
            )
        return ServiceResult(
            ok=True, op="delete_graph", data={"id": identifier}, warnings=warnings
        )

    # ------------------------------------------------------------------
    # visualize
    # ------------------------------------------------------------------

    def visualize(self, fmt: str = "dot") -> ServiceResult:
        """Render the graph.

        Formats:
        - ``dot`` — Graphviz DOT, nodes coloured by label
        - ``json`` — D3-compatible ``{"nodes": [...], "links": [...]}``
        - ``summary`` — counts per node label and relationship type
        """
        if fmt not in VISUALIZE_FORMATS:
            return failure(
                "visualize",
                "INVALID_FORMAT",
                f"Unknown graph format: {fmt}",
                detail={"format": fmt, "valid": list(VISUALIZE_FORMATS)},
            )

        g = self._workspace.query.graph.graph
        if fmt == "dot":
            content = _to_dot(g)
        elif fmt == "json":
            content = _to_d3_json(g)
        else:
            content = _to_summary(g)

        return ServiceResult(
            ok=True,
            op="visualize",
            data={
                "format": fmt,
                "content": content,
                "node_count": sum(1 for _ in _stored_nodes(g)),
                "edge_count": g.number_of_edges(),
            },
        )


# ---------------------------------------------------------------------------
# Renderers over the NetworkX view
# ---------------------------------------------------------------------------


def _stored_nodes(g: Any) -> Iterator[tuple[str, dict[str, Any]]]:
    """Nodes that exist in the store (dangling edge endpoints excluded)."""
    for node_id, attrs in g.nodes(data=True):
        if attrs.get("stored"):
            yield node_id, attrs


def _escape(text: object) -> str:
    return str(text).replace("\\", "\\\\").replace('"', '\\"')


def _node_name(node_id: str, attrs: dict[str, Any]) -> str:
    props = attrs.get("properties") or {}
    return str(props.get("name") or attrs.get("label") or node_id)


def _to_dot(g: Any) -> str:
    """Graphviz DOT notation from the engine's MultiDiGraph."""
    lines = [
        "digraph KnowledgeGraph {",
        "  rankdir=LR;",
        '  node [style=filled, fontname="Arial"];',
        '  edge [fontname="Arial"];',
    ]
    for node_id, attrs in _stored_nodes(g):
        label = attrs.get("label", "")
        color = _NODE_COLORS.get(str(label).lower(), _DEFAULT_COLOR)
        lines.append(
            f'  "{_escape(node_id)}" [label="{_escape(_node_name(node_id, attrs))}", '
            f'fillcolor="{color}"];'
        )
    for src, tgt, attrs in g.edges(data=True):
        lines.append(
            f'  "{_escape(src)}" -> "{_escape(tgt)}" [label="{_escape(attrs.get("label", ""))}"];'
        )
    lines.append("}")
    return "\n".join(lines) + "\n"


def _to_d3_json(g: Any) -> str:
    """D3-compatible JSON: ``nodes`` with id/name/label, ``links`` with edge ids."""
    d3_nodes = [
        {
            "id": node_id,
            "name": _node_name(node_id, attrs),
            "label": attrs.get("label", ""),
        }
        for node_id, attrs in _stored_nodes(g)
    ]
    d3_links = [
        {"id": key, "source": src, "target": tgt, "label": attrs.get("label", "")}
        for src, tgt, key, attrs in g.edges(keys=True, data=True)
    ]
    return json.dumps({"nodes": d3_nodes, "links": d3_links}, indent=2) + "\n"


def _to_summary(g: Any) -> str:
    node_types = count_by(str(attrs.get("label", "")) for _, attrs in _stored_nodes(g))
    edge_types = count_by(str(attrs.get("label", "")) for _, _, attrs in g.edges(data=True))

    lines = ["Knowledge Graph Summary", "", "Node Types:"]
    lines.extend(f"  {name}: {count}" for name, count in node_types.items())
    lines.extend(["", "Relationship Types:"])
    lines.extend(f"  {name}: {count}" for name, count in edge_types.items())
    lines.extend(
        [
            "",
            f"Total Nodes: {sum(node_types.values())}",
            f"Total Relationships: {g.number_of_edges()}",
        ]
    )
    return "\n".join(lines) + "\n"
