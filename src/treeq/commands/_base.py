"""Custom Click base classes with --examples support and treeq exit codes.

Provides TreeqCommand and TreeqGroup that accept an ``examples`` parameter.
When ``--examples`` is passed, the command prints usage examples and exits.
Click usage errors (bad options, missing arguments, unknown commands) exit
with :attr:`ExitCode.USAGE` instead of Click's default of 2, which treeq
reserves for failed validations.
"""

from __future__ import annotations

from typing import Any

import click

from treeq.domain.errors import ExitCode
from treeq.infrastructure.formats import Format

FORMAT_CHOICE = click.Choice([f.value for f in Format], case_sensitive=False)


def _add_examples_option(cmd: click.Command | click.Group, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command or group."""

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


class TreeqCommand(click.Command):
    """Click Command subclass with ``--examples`` and usage exit code 3."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def make_context(self, *args: Any, **kwargs: Any) -> click.Context:
        try:
            return super().make_context(*args, **kwargs)
        except click.UsageError as exc:
            exc.exit_code = ExitCode.USAGE
            raise


class TreeqGroup(click.Group):
    """Click Group subclass with ``--examples`` and usage exit code 3.

    Sets ``command_class = TreeqCommand`` so all subcommands automatically
    accept the ``examples`` parameter without explicit ``cls=`` each time.
    """

    command_class = TreeqCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def make_context(self, *args: Any, **kwargs: Any) -> click.Context:
        try:
            return super().make_context(*args, **kwargs)
        except click.UsageError as exc:
            exc.exit_code = ExitCode.USAGE
            raise

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = ExitCode.USAGE
            raise
