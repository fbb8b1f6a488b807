"""Tests for the ingest command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from kgctl.cli import cli


@pytest.mark.usefixtures("_isolated_cwd")
class TestIngestCommand:
    def test_single_document(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "notes.md").write_text("Alice works at Acme\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["ingest", "notes.md"])
        assert result.exit_code == 0, result.output
        assert "process_document" in result.output
        assert "entity_count: 2" in result.output
        assert (tmp_path / ".kgctl" / "graphs" / "main.json").is_file()

    def test_json(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "notes.md").write_text("Alice works at Acme\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["--json", "ingest", "notes.md"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["data"]["relation_count"] == 1
        assert data["data"]["path"] == "notes.md"

    def test_batch_skips_missing(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        (tmp_path / "a.md").write_text("Alice works at Acme\n", encoding="utf-8")
        (tmp_path / "b.md").write_text("Bob met Carol\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["--json", "ingest", "a.md", "b.md", "missing.md"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["data"]["count"] == 2
        assert data["data"]["failed"] == ["missing.md"]
        assert len(data["warnings"]) == 1

    def test_missing_single_file_fails(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["ingest", "missing.md"])
        assert result.exit_code == 1
        assert "EXTRACTION" in result.output or "ERROR" in result.output

    def test_requires_path(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["ingest"])
        assert result.exit_code == 2

    def test_graph_persists_between_invocations(
        self, cli_runner: CliRunner, tmp_path: Path
    ) -> None:
        (tmp_path / "notes.md").write_text("Alice works at Acme\n", encoding="utf-8")
        cli_runner.invoke(cli, ["ingest", "notes.md"])
        result = cli_runner.invoke(cli, ["--json", "graph", "stats"])
        data = json.loads(result.stdout)
        assert data["data"]["graph"]["node_count"] == 2
        assert data["data"]["graph"]["edge_count"] == 1
