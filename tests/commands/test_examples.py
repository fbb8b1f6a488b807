"""Tests for --examples flag on CLI commands.

Parametrized to cover all commands that define examples text.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from kgctl.cli import cli

# (CLI args, expected keywords in output)
EXAMPLES_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["ingest", "--examples"], ["kgctl ingest notes/meeting.md"]),
    # -- query --
    (["query", "--examples"], ["kgctl query semantic", "kgctl query run query.json"]),
    (["query", "run", "--examples"], ["kgctl query run -"]),
    (["query", "semantic", "--examples"], ["--max-distance 1"]),
    (["query", "structured", "--examples"], ["--edge-label WORKS_AT"]),
    (["query", "hybrid", "--examples"], ["--strategy parallel"]),
    (["query", "stats", "--examples"], ["kgctl query stats"]),
    (["query", "clear-cache", "--examples"], ["kgctl query clear-cache"]),
    # -- graph --
    (["graph", "--examples"], ["kgctl graph stats", "kgctl graph import backup.json"]),
    (["graph", "export", "--examples"], ["--output backup.json"]),
    (["graph", "import", "--examples"], ["kgctl graph import"]),
    (["graph", "clear", "--examples"], ["--yes"]),
    (["graph", "list", "--examples"], ["kgctl graph list"]),
    (["graph", "delete", "--examples"], ["kgctl graph delete"]),
    (["graph", "visualize", "--examples"], ["--format summary"]),
]


@pytest.mark.usefixtures("_isolated_cwd")
@pytest.mark.parametrize(
    ("args", "keywords"),
    EXAMPLES_COMMANDS,
    ids=[" ".join(args[:-1]) for args, _ in EXAMPLES_COMMANDS],
)
def test_examples_flag(cli_runner: CliRunner, args: list[str], keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert "Examples for" in result.output
    for keyword in keywords:
        assert keyword in result.output


@pytest.mark.usefixtures("_isolated_cwd")
def test_help_mentions_examples(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["graph", "--help"])
    assert result.exit_code == 0
    assert "Run with --examples" in result.output


@pytest.mark.usefixtures("_isolated_cwd")
def test_examples_does_not_create_data_dir(cli_runner: CliRunner, tmp_path: Path) -> None:
    cli_runner.invoke(cli, ["graph", "stats", "--examples"])
    assert not (tmp_path / ".kgctl").exists()
