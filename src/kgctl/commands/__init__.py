"""Subcommand modules for kgctl.

Provides register_commands(), which imports command modules only when
the CLI is assembled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``query`` and ``graph`` groups and the ``ingest`` command."""
    from kgctl.commands.graph import graph
    from kgctl.commands.ingest import ingest
    from kgctl.commands.query import query

    cli.add_command(ingest)
    cli.add_command(query)
    cli.add_command(graph)
