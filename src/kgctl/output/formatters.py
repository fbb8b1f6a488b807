"""Output-mode selection for ServiceResult.

``--json`` serialises the whole envelope, ``--quiet`` prints ids only,
and the default mode hands the result to the Rich renderers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from kgctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from kgctl.services.result import ServiceResult


class OutputSettings(BaseModel):
    """How a result should be printed. JSON wins over quiet."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display according to *settings*."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
