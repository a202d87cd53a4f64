"""Subcommand modules for treeq.

Provides register_commands() which uses deferred imports so the service
and engine modules are only loaded when a command is registered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the four standalone commands on the root CLI group."""
    from treeq.commands.assert_cmd import assert_cmd
    from treeq.commands.canon import canon
    from treeq.commands.diff import diff
    from treeq.commands.merge import merge

    cli.add_command(canon)
    cli.add_command(diff)
    cli.add_command(assert_cmd)
    cli.add_command(merge)
