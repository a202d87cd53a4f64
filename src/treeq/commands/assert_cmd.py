"""Command: validate records against a rule file or a JSON Schema."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from treeq.commands._base import FORMAT_CHOICE, TreeqCommand

if TYPE_CHECKING:
    from treeq.commands._context import AppContext


@click.command(
    "assert",
    cls=TreeqCommand,
    examples="""\
  treeq assert records.json --rules rules.yaml
  treeq assert records.json --schema record.schema.json
  treeq assert events.jsonl --rules strict.rules.yaml --no-fail-on-mismatch
  treeq --json assert users.csv --rules users.rules.json
  treeq -q assert --format jsonl - --rules rules.yaml < events.jsonl""",
)
@click.argument("source", type=click.Path(dir_okay=False, allow_dash=True, path_type=Path))
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file (YAML or JSON); may `extends` other rule files.",
)
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON Schema document (JSON or YAML) to validate against instead of rules.",
)
@click.option(
    "--format", "input_format", type=FORMAT_CHOICE, help="Input format (default: by extension)."
)
@click.option(
    "--fail-on-mismatch/--no-fail-on-mismatch",
    default=True,
    help="Exit with code 2 when any record fails a rule.",
)
@click.pass_obj
def assert_cmd(
    app: AppContext,
    source: Path,
    rules_path: Path | None,
    schema_path: Path | None,
    input_format: str | None,
    fail_on_mismatch: bool,
) -> None:
    """Check every record in SOURCE against the rules or the schema.

    Exactly one of --rules and --schema must be given.
    """
    from treeq.services.assertion import AssertService

    result = AssertService(app.settings).check(
        source, rules_path, schema=schema_path, input_format=input_format
    )
    app.emit(result, failed=fail_on_mismatch and not result.data.get("matched", True))
