"""Tests for IngestService — reading, extraction, and batch behaviour."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pluggy
import pytest

from kgctl.config.settings import KgSettings
from kgctl.domain.errors import GraphMutationError
from kgctl.domain.types import DocumentMetadata
from kgctl.infrastructure.persistence import PersistenceAdapter
from kgctl.infrastructure.workspace import Workspace
from kgctl.services.ingest import IngestService

hookimpl = pluggy.HookimplMarker("kgctl")


def _doc(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class _DictExtractor:
    @hookimpl(tryfirst=True)
    def extract_document(self, content: str, metadata: DocumentMetadata) -> dict[str, Any]:
        return {
            "entities": [{"id": "x", "type": "thing", "name": content.strip()}],
            "relations": [],
            "metadata": metadata.model_dump(),
        }


class _FailingExtractor:
    @hookimpl(tryfirst=True)
    def extract_document(self, content: str, metadata: DocumentMetadata) -> None:
        raise RuntimeError("model unavailable")


class _BrokenListener:
    @hookimpl
    def post_document_added(self, path: str, entity_count: int, relation_count: int) -> None:
        raise RuntimeError("listener bug")


class _AddedRecorder:
    def __init__(self) -> None:
        self.paths: list[str] = []

    @hookimpl
    def post_document_added(self, path: str, entity_count: int, relation_count: int) -> None:
        self.paths.append(path)


class TestProcessDocument:
    def test_regex_extraction(self, workspace: Workspace, tmp_path: Path) -> None:
        path = _doc(tmp_path, "note.md", "Alice works at Acme\n")
        result = IngestService(workspace).process_document(path)

        assert result.ok, result.error
        assert result.data["entity_count"] == 2
        assert result.data["relation_count"] == 1
        assert result.data["filename"] == "note.md"
        assert workspace.store.get_node("ent:alice") is not None
        edge = workspace.store.get_edge("rel:ent:alice:works_at:ent:acme")
        assert edge is not None
        assert edge.label == "WORKS_AT"

    def test_saved_to_main(self, workspace: Workspace, tmp_path: Path) -> None:
        path = _doc(tmp_path, "note.md", "Alice works at Acme\n")
        IngestService(workspace).process_document(path)
        snapshot = PersistenceAdapter(workspace.settings.graphs_dir).load_graph()
        assert {n.id for n in snapshot.nodes} == {"ent:alice", "ent:acme"}

    def test_repeat_ingest_keeps_counts(self, workspace: Workspace, tmp_path: Path) -> None:
        path = _doc(tmp_path, "note.md", "Alice works at Acme\n")
        svc = IngestService(workspace)
        svc.process_document(path)
        svc.process_document(path)
        stats = workspace.store.get_stats()
        assert (stats.node_count, stats.edge_count, stats.document_count) == (2, 1, 1)

    def test_source_document_is_path(self, workspace: Workspace, tmp_path: Path) -> None:
        path = _doc(tmp_path, "note.md", "Alice works at Acme\n")
        IngestService(workspace).process_document(path)
        node = workspace.store.get_node("ent:alice")
        assert node is not None
        assert node.properties["sourceDocument"] == str(path)

    def test_missing_file(self, workspace: Workspace, tmp_path: Path) -> None:
        result = IngestService(workspace).process_document(tmp_path / "nope.md")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "EXTRACTION_FAILED"

    def test_extractor_failure(self, workspace: Workspace, tmp_path: Path) -> None:
        workspace.plugin_manager.register_plugin(_FailingExtractor())
        result = IngestService(workspace).process_document(_doc(tmp_path, "a.md", "Alice"))
        assert not result.ok
        assert result.error is not None
        assert "model unavailable" in result.error.message
        assert workspace.store.get_stats().node_count == 0

    def test_no_extractor(self, data_dir: Path, tmp_path: Path) -> None:
        ws = Workspace(KgSettings(data_dir=data_dir, plugins={"builtin_extractor": False}))
        try:
            result = IngestService(ws).process_document(_doc(tmp_path, "a.md", "Alice"))
        finally:
            ws.close()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "EXTRACTION_FAILED"

    def test_plugin_output_validated(self, workspace: Workspace, tmp_path: Path) -> None:
        workspace.plugin_manager.register_plugin(_DictExtractor())
        result = IngestService(workspace).process_document(_doc(tmp_path, "a.md", "Widget"))
        assert result.ok, result.error
        node = workspace.store.get_node("x")
        assert node is not None
        assert node.properties["name"] == "Widget"

    def test_listener_failure_is_warning(self, workspace: Workspace, tmp_path: Path) -> None:
        workspace.plugin_manager.register_plugin(_BrokenListener())
        result = IngestService(workspace).process_document(_doc(tmp_path, "a.md", "Alice"))
        assert result.ok
        assert result.warnings == ["Plugin hook post_document_added failed"]


class TestProcessDocuments:
    def test_batch(self, workspace: Workspace, tmp_path: Path) -> None:
        paths = [
            _doc(tmp_path, "a.md", "Alice works at Acme\n"),
            _doc(tmp_path, "b.md", "Bob met Carol\n"),
        ]
        result = IngestService(workspace).process_documents(paths)
        assert result.ok
        assert result.data["count"] == 2
        assert result.data["failed"] == []
        assert workspace.store.get_stats().document_count == 2

    def test_skips_unreadable(self, workspace: Workspace, tmp_path: Path) -> None:
        good = _doc(tmp_path, "a.md", "Alice works at Acme\n")
        missing = tmp_path / "missing.md"
        result = IngestService(workspace).process_documents([missing, good])
        assert result.ok
        assert result.data["count"] == 1
        assert result.data["failed"] == [str(missing)]
        assert len(result.warnings) == 1
        assert str(missing) in result.warnings[0]

    def test_all_failed_still_ok(self, workspace: Workspace, tmp_path: Path) -> None:
        result = IngestService(workspace).process_documents([tmp_path / "x.md"])
        assert result.ok
        assert result.data["count"] == 0

    def test_autosave_failure_is_not_a_skip(
        self, workspace: Workspace, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        real_save = workspace.persistence.save_graph
        calls: list[str] = []

        def flaky_save(snapshot: Any, identifier: str = "main") -> Path:
            calls.append(identifier)
            if len(calls) == 1:
                raise GraphMutationError("disk full")
            return real_save(snapshot, identifier)

        monkeypatch.setattr(workspace.persistence, "save_graph", flaky_save)
        recorder = _AddedRecorder()
        workspace.plugin_manager.register_plugin(recorder)
        path = _doc(tmp_path, "a.md", "Alice works at Acme\n")

        result = IngestService(workspace).process_documents([path])

        assert result.ok, result.error
        assert result.data["count"] == 1
        assert result.data["failed"] == []
        assert result.warnings == [f"Autosave failed after {path}: disk full"]
        assert recorder.paths == [str(path)]
        assert workspace.persistence.load_graph().nodes
