"""PersistenceAdapter — named JSON snapshots on the local filesystem.

Layout: ``<base>/<identifier>.json`` with an optional sibling
``<identifier>.json.backup`` holding the version before the last write.

Writes go straight over the target file (no temp file + rename), so a
crash mid-write can leave a truncated snapshot; the ``.backup`` sibling is
the recovery path. Backup copies are best-effort: a failed copy is logged
and the primary write proceeds.
"""

from __future__ import annotations

import json
import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pydantic

from kgctl.domain.errors import GraphMutationError, GraphNotFoundError, ValidationError
from kgctl.domain.types import GraphSnapshot, PersistenceStats

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".json"
BACKUP_SUFFIX = ".backup"
DEFAULT_IDENTIFIER = "main"


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def check_graph_payload(data: Any) -> list[str]:
    """Return structural problems in a raw snapshot payload (empty if valid).

    Every node needs a non-empty string ``id`` and ``label``; every edge a
    non-empty string ``id``, ``source`` and ``target``.
    """
    if not isinstance(data, dict):
        return ["payload is not an object"]
    problems: list[str] = []
    nodes, edges = data.get("nodes"), data.get("edges")
    if not isinstance(nodes, list):
        problems.append("'nodes' is not a list")
        nodes = []
    if not isinstance(edges, list):
        problems.append("'edges' is not a list")
        edges = []

    for i, node in enumerate(nodes):
        if not isinstance(node, dict):
            problems.append(f"nodes[{i}] is not an object")
            continue
        for key in ("id", "label"):
            if not _is_nonempty_str(node.get(key)):
                problems.append(f"nodes[{i}] has no {key}")
    for i, edge in enumerate(edges):
        if not isinstance(edge, dict):
            problems.append(f"edges[{i}] is not an object")
            continue
        for key in ("id", "source", "target"):
            if not _is_nonempty_str(edge.get(key)):
                problems.append(f"edges[{i}] has no {key}")
    return problems


class PersistenceAdapter:
    """Save, load, and manage graph snapshots under one base directory."""

    def __init__(self, base_path: Path, *, backup: bool = True) -> None:
        self._base = base_path
        self._backup = backup
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create snapshot directory {self._base}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(self._base)}) from exc

    @property
    def base_path(self) -> Path:
        return self._base

    def path_for(self, identifier: str) -> Path:
        """Resolve the snapshot file for *identifier*.

        Raises ValueError if the identifier would escape the base directory.
        """
        if not identifier:
            msg = "Snapshot identifier cannot be empty"
            raise ValueError(msg)
        path = self._base / f"{identifier}{SNAPSHOT_SUFFIX}"
        if not path.resolve().is_relative_to(self._base.resolve()):
            msg = f"Snapshot identifier escapes {self._base}: {identifier!r}"
            raise ValueError(msg)
        return path

    # ------------------------------------------------------------------
    # Save / load
    # ------------------------------------------------------------------

    def save_graph(self, snapshot: GraphSnapshot, identifier: str = DEFAULT_IDENTIFIER) -> Path:
        """Write *snapshot* as indented JSON, backing up the previous version."""
        path = self.path_for(identifier)
        if self._backup:
            self._create_backup(path)
        try:
            path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            msg = f"Failed to save graph {identifier!r}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(path)}) from exc
        logger.debug(
            "Saved graph %s (%d nodes, %d edges)",
            identifier,
            len(snapshot.nodes),
            len(snapshot.edges),
        )
        return path

    def load_graph(self, identifier: str = DEFAULT_IDENTIFIER) -> GraphSnapshot:
        """Read a snapshot. A missing file yields an empty snapshot."""
        path = self.path_for(identifier)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No snapshot for %s; starting empty", identifier)
            return GraphSnapshot()
        except OSError as exc:
            msg = f"Failed to load graph {identifier!r}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(path)}) from exc
        return self._parse(raw, source=path)

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def list_graphs(self) -> list[str]:
        """Identifiers of all persisted snapshots, sorted."""
        if not self._base.is_dir():
            return []
        return sorted(
            p.name.removesuffix(SNAPSHOT_SUFFIX)
            for p in self._base.iterdir()
            if p.is_file() and p.name.endswith(SNAPSHOT_SUFFIX)
        )

    def delete_graph(self, identifier: str) -> None:
        """Delete a snapshot, keeping a backup copy when backups are enabled."""
        path = self._existing(identifier)
        if self._backup:
            self._create_backup(path)
        try:
            path.unlink()
        except OSError as exc:
            msg = f"Failed to delete graph {identifier!r}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(path)}) from exc
        logger.debug("Deleted graph %s", identifier)

    def export_graph(self, identifier: str, export_path: Path) -> Path:
        """Copy a persisted snapshot to *export_path*."""
        source = self._existing(identifier)
        try:
            export_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, export_path)
        except OSError as exc:
            msg = f"Failed to export graph {identifier!r} to {export_path}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(export_path)}) from exc
        return export_path

    def import_graph(
        self, import_path: Path, identifier: str = DEFAULT_IDENTIFIER
    ) -> GraphSnapshot:
        """Validate the file at *import_path* and save it as *identifier*.

        Validation completes before anything is written, so a rejected
        import leaves the existing snapshot untouched.
        """
        try:
            raw = import_path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read import file {import_path}: {exc}"
            raise GraphMutationError(msg, detail={"path": str(import_path)}) from exc
        snapshot = self._parse(raw, source=import_path)
        self.save_graph(snapshot, identifier)
        logger.info("Imported %s as %s", import_path, identifier)
        return snapshot

    def get_stats(self) -> PersistenceStats:
        total_size = 0
        last_modified: datetime | None = None
        graphs = self.list_graphs()
        for identifier in graphs:
            try:
                stat = self.path_for(identifier).stat()
            except OSError as exc:
                msg = f"Cannot stat graph {identifier!r}: {exc}"
                raise GraphMutationError(msg) from exc
            total_size += stat.st_size
            mtime = datetime.fromtimestamp(stat.st_mtime, UTC)
            if last_modified is None or mtime > last_modified:
                last_modified = mtime
        return PersistenceStats(
            total_graphs=len(graphs),
            total_size=total_size,
            last_modified=last_modified,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _existing(self, identifier: str) -> Path:
        path = self.path_for(identifier)
        if not path.is_file():
            msg = f"Graph {identifier!r} does not exist"
            raise GraphNotFoundError(msg, detail={"identifier": identifier})
        return path

    def _create_backup(self, path: Path) -> None:
        if not path.exists():
            return
        backup_path = path.with_name(path.name + BACKUP_SUFFIX)
        try:
            shutil.copyfile(path, backup_path)
        except OSError:
            logger.warning("Failed to back up %s", path, exc_info=True)

    @staticmethod
    def _parse(raw: str, *, source: Path) -> GraphSnapshot:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"{source} is not valid JSON: {exc}"
            raise ValidationError(msg, detail={"path": str(source)}) from exc

        problems = check_graph_payload(data)
        if problems:
            msg = f"Invalid graph data structure in {source}"
            raise ValidationError(msg, detail={"path": str(source), "problems": problems})
        try:
            return GraphSnapshot.model_validate(data)
        except pydantic.ValidationError as exc:
            msg = f"Invalid graph data structure in {source}"
            raise ValidationError(
                msg, detail={"path": str(source), "problems": [str(e["msg"]) for e in exc.errors()]}
            ) from exc
