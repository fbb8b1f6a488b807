"""Rich Console factory and theme for kgctl output.

Consoles render into a StringIO buffer so every renderer keeps the
``str`` return contract. Rich drops colour codes by itself when the
output is not a terminal (tests, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

KG_THEME = Theme(
    {
        "kg.ok": "bold green",
        "kg.error": "bold red",
        "kg.warning": "bold yellow",
        "kg.op": "bold cyan",
        "kg.key": "dim",
        "kg.id": "bold blue",
        "kg.path": "dim",
        "kg.name": "bold",
        "kg.score": "magenta",
        "kg.label.person": "blue",
        "kg.label.organization": "red",
        "kg.label.location": "green",
        "kg.label.project": "magenta",
        "kg.label.technology": "yellow",
    }
)

_LABEL_STYLES: dict[str, str] = {
    "person": "kg.label.person",
    "organization": "kg.label.organization",
    "location": "kg.label.location",
    "project": "kg.label.project",
    "technology": "kg.label.technology",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console writing to an in-memory buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Fixed render width (defaults to 120 for stable output).
    """
    return Console(
        file=StringIO(),
        theme=KG_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Return everything rendered so far by a console from :func:`create_console`."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_label(label: str) -> str:
    """Rich style for a node label; empty for labels without one."""
    return _LABEL_STYLES.get(label.lower(), "")
