"""Click base classes adding an ``--examples`` flag.

``kgctl graph --examples`` prints usage examples and exits, which keeps
``--help`` short; help text ends with a hint pointing at the flag.
Groups make every subcommand a :class:`KgCommand`.
"""

from __future__ import annotations

from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


def _examples_hint(cmd: KgCommand | KgGroup, formatter: click.HelpFormatter) -> None:
    if cmd.examples:
        formatter.write_paragraph()
        formatter.write_text("Run with --examples to see usage examples.")


class KgCommand(click.Command):
    """Command accepting an ``examples`` string."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        _examples_hint(self, formatter)


class KgGroup(click.Group):
    """Group accepting an ``examples`` string; subcommands default to KgCommand."""

    command_class = KgCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        _examples_hint(self, formatter)
