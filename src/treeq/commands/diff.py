"""Command: structural diff of two record files."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from treeq.commands._base import FORMAT_CHOICE, TreeqCommand

if TYPE_CHECKING:
    from treeq.commands._context import AppContext


@click.command(
    cls=TreeqCommand,
    examples="""\
  treeq diff before.json after.json
  treeq diff before.jsonl after.jsonl --key id
  treeq diff a.yaml b.yaml --ignore-path meta.updated_at --ignore-path '$["etag"]'
  treeq diff a.json b.json --value-diff-cap 10
  treeq --json diff a.csv b.csv --key id --fail-on-diff""",
)
@click.argument("left", type=click.Path(dir_okay=False, allow_dash=True, path_type=Path))
@click.argument("right", type=click.Path(dir_okay=False, allow_dash=True, path_type=Path))
@click.option("--key", "key_path", default=None, help="Pair records by the value at this path.")
@click.option(
    "--ignore-path",
    "ignore_paths",
    multiple=True,
    help="Skip this record-relative subtree (repeatable).",
)
@click.option(
    "--value-diff-cap",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum value diffs to list (default from [diff] value_diff_cap).",
)
@click.option(
    "--format", "input_format", type=FORMAT_CHOICE, help="Input format (default: by extension)."
)
@click.option("--fail-on-diff", is_flag=True, help="Exit with code 2 when the inputs differ.")
@click.pass_obj
def diff(
    app: AppContext,
    left: Path,
    right: Path,
    key_path: str | None,
    ignore_paths: tuple[str, ...],
    value_diff_cap: int | None,
    input_format: str | None,
    fail_on_diff: bool,
) -> None:
    """Compare LEFT and RIGHT record by record."""
    from treeq.services.diff import DiffService

    result = DiffService(app.settings).diff(
        left,
        right,
        key=key_path,
        ignore_paths=ignore_paths,
        value_diff_cap=value_diff_cap,
        input_format=input_format,
    )
    app.emit(result, failed=fail_on_diff and not result.data.get("matched", True))
