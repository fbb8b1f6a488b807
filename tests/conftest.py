"""Shared pytest fixtures and test helpers for kgctl tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from kgctl.config.settings import KgSettings
from kgctl.domain.types import (
    DocumentMetadata,
    Entity,
    ProcessingResult,
    Relation,
)
from kgctl.infrastructure.graph.store import GraphStore
from kgctl.infrastructure.workspace import Workspace


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer config and KGCTL_* variables out of the tests."""
    for name in ("KGCTL_CONFIG", "KGCTL_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Temporary data directory for snapshots and local plugins."""
    return tmp_path / ".kgctl"


@pytest.fixture
def settings(data_dir: Path) -> KgSettings:
    """Settings rooted at the temp data dir; autosave after every mutation."""
    return KgSettings(data_dir=data_dir, store={"autosave_interval": 0})


@pytest.fixture
def workspace(settings: KgSettings) -> Iterator[Workspace]:
    """Workspace over an empty temp data dir."""
    ws = Workspace(settings)
    try:
        yield ws
    finally:
        ws.close()


@pytest.fixture
def store() -> GraphStore:
    """Standalone store without persistence."""
    return GraphStore()


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp dir so the CLI creates an isolated ``.kgctl``.

    Use via ``@pytest.mark.usefixtures("_isolated_cwd")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_result(
    path: str = "docs/people.md",
    entities: list[dict[str, Any]] | None = None,
    relations: list[dict[str, Any]] | None = None,
) -> ProcessingResult:
    """Build a ProcessingResult from plain dicts."""
    return ProcessingResult(
        entities=[Entity(**e) for e in entities or []],
        relations=[Relation(**r) for r in relations or []],
        metadata=DocumentMetadata(
            filename=Path(path).name,
            type=Path(path).suffix,
            path=path,
            processed_at=datetime(2025, 1, 1, tzinfo=UTC),
        ),
    )


def people_result(path: str = "docs/people.md") -> ProcessingResult:
    """Alice works at Acme, Bob works at Acme, Alice knows Bob; Carol is isolated."""
    return make_result(
        path,
        entities=[
            {"id": "alice", "type": "person", "name": "Alice"},
            {"id": "bob", "type": "person", "name": "Bob"},
            {"id": "acme", "type": "organization", "name": "Acme Corp"},
            {"id": "carol", "type": "person", "name": "Carol"},
        ],
        relations=[
            {"id": "r1", "type": "WORKS_AT", "source": "alice", "target": "acme"},
            {"id": "r2", "type": "WORKS_AT", "source": "bob", "target": "acme"},
            {"id": "r3", "type": "KNOWS", "source": "alice", "target": "bob"},
        ],
    )
