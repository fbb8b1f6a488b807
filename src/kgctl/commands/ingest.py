"""Command: ingest documents into the knowledge graph."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from kgctl.commands._base import KgCommand

if TYPE_CHECKING:
    from kgctl.commands._context import AppContext


@click.command(
    cls=KgCommand,
    examples="""\
  kgctl ingest notes/meeting.md
  kgctl ingest docs/*.txt
  kgctl --json ingest report.md
  kgctl -v ingest report.md   # show extracted entities""",
)
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.pass_obj
def ingest(app: AppContext, paths: tuple[Path, ...]) -> None:
    """Extract entities and relations from documents and add them to the graph.

    With several paths, unreadable documents are skipped with a warning.
    """
    from kgctl.services.ingest import IngestService

    svc = IngestService(app.workspace)
    if len(paths) == 1:
        app.emit(svc.process_document(paths[0]))
    else:
        app.emit(svc.process_documents(list(paths)))
