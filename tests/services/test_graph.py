"""Tests for GraphService — export/import, stats, clear, and visualisation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from kgctl.domain.errors import GraphMutationError
from kgctl.domain.types import GraphSnapshot, GraphUpdate, Node
from kgctl.infrastructure.workspace import Workspace
from kgctl.services.graph import GraphService
from kgctl.services.query import QueryService
from tests.conftest import people_result


@pytest.fixture
def svc(workspace: Workspace) -> GraphService:
    workspace.store.add_document(people_result())
    return GraphService(workspace)


def _main(workspace: Workspace) -> Path:
    return workspace.settings.graphs_dir / "main.json"


class TestExport:
    def test_in_memory(self, svc: GraphService) -> None:
        result = svc.export_graph()
        assert result.ok
        assert result.data["node_count"] == 4
        assert result.data["edge_count"] == 3
        assert result.data["path"] is None
        assert len(result.data["graph"]["nodes"]) == 4

    def test_to_file(self, svc: GraphService, workspace: Workspace, tmp_path: Path) -> None:
        target = tmp_path / "export.json"
        result = svc.export_graph(target)
        assert result.ok, result.error
        assert result.data["path"] == str(target)
        assert target.read_bytes() == _main(workspace).read_bytes()


class TestImport:
    def test_replaces_graph(self, svc: GraphService, workspace: Workspace, tmp_path: Path) -> None:
        source = tmp_path / "in.json"
        source.write_text(
            json.dumps({"nodes": [{"id": "z", "label": "thing"}], "edges": []}),
            encoding="utf-8",
        )
        result = svc.import_graph(source)
        assert result.ok, result.error
        assert result.data["node_count"] == 1
        assert [n.id for n in workspace.store.get_graph_data().nodes] == ["z"]
        assert json.loads(_main(workspace).read_text(encoding="utf-8"))["nodes"][0]["id"] == "z"

    def test_invalid_file_changes_nothing(
        self, svc: GraphService, workspace: Workspace, tmp_path: Path
    ) -> None:
        workspace.save()
        before = _main(workspace).read_bytes()
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"nodes": [{"label": "x"}], "edges": []}), encoding="utf-8")

        result = svc.import_graph(bad)

        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_GRAPH_DATA"
        assert _main(workspace).read_bytes() == before
        assert workspace.store.get_stats().node_count == 4

    def test_missing_file(self, svc: GraphService, tmp_path: Path) -> None:
        result = svc.import_graph(tmp_path / "nope.json")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "PERSISTENCE_FAILED"


class TestStatsAndClear:
    def test_stats_sections(self, svc: GraphService) -> None:
        result = svc.stats()
        assert result.ok
        assert set(result.data) == {"graph", "persistence", "query"}
        assert result.data["graph"]["node_count"] == 4
        assert result.data["graph"]["document_count"] == 1
        assert result.data["persistence"]["total_graphs"] == 1
        assert result.data["query"]["total_queries"] == 0

    def test_clear(self, svc: GraphService, workspace: Workspace) -> None:
        result = svc.clear()
        assert result.ok
        stats = svc.stats().data["graph"]
        assert (stats["node_count"], stats["edge_count"], stats["document_count"]) == (0, 0, 0)
        saved = json.loads(_main(workspace).read_text(encoding="utf-8"))
        assert saved == {"nodes": [], "edges": []}

    def test_clear_drops_cached_queries(self, svc: GraphService, workspace: Workspace) -> None:
        queries = QueryService(workspace)
        assert queries.semantic_search("carol").data["count"] == 1
        svc.clear()
        assert queries.semantic_search("carol").data["count"] == 0

    def test_failed_save_still_drops_cached_queries(
        self, svc: GraphService, workspace: Workspace, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        queries = QueryService(workspace)
        assert queries.semantic_search("carol").data["count"] == 1

        def broken_save(snapshot: GraphSnapshot, identifier: str = "main") -> Path:
            raise GraphMutationError("disk full")

        monkeypatch.setattr(workspace.persistence, "save_graph", broken_save)
        result = svc.clear()

        assert not result.ok
        assert result.error is not None
        assert result.error.message == "disk full"
        assert queries.semantic_search("carol").data["count"] == 0


class TestSnapshots:
    def test_list(self, svc: GraphService, workspace: Workspace) -> None:
        workspace.persistence.save_graph(workspace.store.get_graph_data(), "backup")
        result = svc.list_graphs()
        assert result.data["count"] == 2
        assert result.data["items"] == [
            {"id": "backup", "active": False},
            {"id": "main", "active": True},
        ]

    def test_delete_keeps_memory(self, svc: GraphService, workspace: Workspace) -> None:
        result = svc.delete_graph("main")
        assert result.ok
        assert not _main(workspace).exists()
        assert workspace.store.get_stats().node_count == 4

    def test_delete_missing(self, svc: GraphService) -> None:
        result = svc.delete_graph("ghost")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"

    def test_delete_bad_identifier(self, svc: GraphService) -> None:
        result = svc.delete_graph("../etc")
        assert result.error is not None
        assert result.error.code == "INVALID_IDENTIFIER"


class TestVisualize:
    def test_dot(self, svc: GraphService) -> None:
        result = svc.visualize("dot")
        content = result.data["content"]
        assert content.startswith("digraph KnowledgeGraph {")
        assert '"alice" [label="Alice", fillcolor="#AED6F1"];' in content
        assert '"acme" [label="Acme Corp", fillcolor="#F5B7B1"];' in content
        assert '"alice" -> "acme" [label="WORKS_AT"];' in content
        assert content.rstrip().endswith("}")

    def test_dot_escapes_quotes(self, workspace: Workspace) -> None:
        workspace.store.load(
            GraphSnapshot(nodes=[Node(id="q", label="x", properties={"name": 'Say "hi"'})])
        )
        content = GraphService(workspace).visualize("dot").data["content"]
        assert 'label="Say \\"hi\\""' in content

    def test_json(self, svc: GraphService) -> None:
        data = json.loads(svc.visualize("json").data["content"])
        assert {n["id"] for n in data["nodes"]} == {"alice", "bob", "acme", "carol"}
        link = next(link for link in data["links"] if link["id"] == "r1")
        assert link == {"id": "r1", "source": "alice", "target": "acme", "label": "WORKS_AT"}

    def test_summary(self, svc: GraphService) -> None:
        content = svc.visualize("summary").data["content"]
        assert "Node Types:\n  person: 3\n  organization: 1" in content
        assert "Relationship Types:\n  WORKS_AT: 2\n  KNOWS: 1" in content
        assert "Total Nodes: 4" in content
        assert "Total Relationships: 3" in content

    def test_dangling_endpoints_not_drawn(self, svc: GraphService, workspace: Workspace) -> None:
        workspace.store.update_graph(
            GraphUpdate.model_validate({"type": "delete", "nodes": [{"id": "acme"}]})
        )
        result = svc.visualize("summary")
        assert result.data["node_count"] == 3
        assert result.data["edge_count"] == 3
        assert "Total Nodes: 3" in result.data["content"]

    def test_invalid_format(self, svc: GraphService) -> None:
        result = svc.visualize("svg")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "INVALID_FORMAT"
