"""Rich Console factory and theme for treeq output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

TREEQ_THEME = Theme(
    {
        "treeq.ok": "bold green",
        "treeq.error": "bold red",
        "treeq.warning": "bold yellow",
        "treeq.fail": "bold magenta",
        "treeq.op": "bold cyan",
        "treeq.key": "dim",
        "treeq.path": "bold blue",
        "treeq.rule": "cyan",
        "treeq.left": "red",
        "treeq.right": "green",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=TREEQ_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
