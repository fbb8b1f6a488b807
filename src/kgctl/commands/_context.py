"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands with
``@click.pass_obj``. The workspace (and with it the snapshot load) is
created on first use, so ``--help`` and ``--version`` never touch disk.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click

from kgctl.domain.errors import KgError
from kgctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from kgctl.config.settings import KgSettings
    from kgctl.infrastructure.workspace import Workspace
    from kgctl.services.result import ServiceResult

logger = logging.getLogger(__name__)


class AppContext:
    """State shared by every command of one CLI invocation."""

    def __init__(self, settings: KgSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from kgctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def workspace(self) -> Workspace:
        """The workspace (created lazily on first access)."""
        if self._workspace is None:
            from kgctl.infrastructure.workspace import Workspace

            try:
                self._workspace = Workspace(self.settings)
            except KgError as exc:
                raise click.ClickException(exc.message) from exc
        return self._workspace

    def close(self) -> None:
        """Flush pending graph changes; a failed flush is reported, not raised."""
        if self._workspace is None:
            return
        try:
            self._workspace.close()
        except KgError as exc:
            logger.warning("Could not save graph on exit: %s", exc.message)
            click.echo(f"WARNING: could not save graph: {exc.message}", err=True)

    def emit(self, result: ServiceResult) -> None:
        """Print a ServiceResult and map it to an exit status.

        Success goes to stdout, with warnings on stderr (in JSON mode they
        are part of the payload). Failure goes to stderr and exits 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
