"""Command: merge overlay documents onto a base document."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from treeq.commands._base import FORMAT_CHOICE, TreeqCommand
from treeq.domain.types import MergePolicy

if TYPE_CHECKING:
    from treeq.commands._context import AppContext


@click.command(
    cls=TreeqCommand,
    examples="""\
  treeq merge base.yaml prod.yaml
  treeq merge base.json a.json b.json --policy last-wins
  treeq merge base.yaml env.yaml --policy-path tags=array-replace
  treeq merge base.yaml env.yaml --policy-path '$["limits"]=last-wins' --output-format json""",
)
@click.argument("base", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument(
    "overlays", nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in MergePolicy]),
    default=None,
    help="Default merge policy (default from [merge] policy).",
)
@click.option(
    "--policy-path",
    "policy_paths",
    multiple=True,
    metavar="PATH=POLICY",
    help="Policy override for a subtree (repeatable; longest path wins).",
)
@click.option("--output-format", type=FORMAT_CHOICE, help="Output format (default: base's).")
@click.pass_obj
def merge(
    app: AppContext,
    base: Path,
    overlays: tuple[Path, ...],
    policy: str | None,
    policy_paths: tuple[str, ...],
    output_format: str | None,
) -> None:
    """Merge OVERLAYS onto BASE, left to right."""
    from treeq.services.merge import MergeService

    app.emit(
        MergeService(app.settings).merge(
            base,
            overlays,
            policy=policy,
            policy_paths=policy_paths,
            output_format=output_format,
        )
    )
