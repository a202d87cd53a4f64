"""Command: canonicalize a document."""

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
  treeq canon records.json
  treeq canon config.yaml --output-format json
  treeq canon --format jsonl - < events.jsonl
  treeq -q canon data.csv --output-format jsonl
  treeq canon records.json --no-sort-keys
  treeq canon events.jsonl --normalize-time""",
)
@click.argument("source", type=click.Path(dir_okay=False, allow_dash=True, path_type=Path))
@click.option(
    "--format", "input_format", type=FORMAT_CHOICE, help="Input format (default: by extension)."
)
@click.option(
    "--output-format",
    type=FORMAT_CHOICE,
    help="Output format (default: same as input).",
)
@click.option(
    "--sort-keys/--no-sort-keys",
    default=None,
    help="Sort object keys (default from [canon] sort_keys).",
)
@click.option(
    "--normalize-time/--no-normalize-time",
    default=None,
    help="Rewrite RFC 3339 timestamps in UTC (default from [canon] normalize_time).",
)
@click.pass_obj
def canon(
    app: AppContext,
    source: Path,
    input_format: str | None,
    output_format: str | None,
    sort_keys: bool | None,
    normalize_time: bool | None,
) -> None:
    """Print the canonical form of SOURCE."""
    from treeq.services.canon import CanonService

    app.emit(
        CanonService(app.settings).canonicalize(
            source,
            input_format=input_format,
            output_format=output_format,
            sort_keys=sort_keys,
            normalize_time=normalize_time,
        )
    )
