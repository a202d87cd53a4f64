"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides centralized result emission (stdout/stderr
routing) and the exit-code contract:

* 0: success
* 2: validation failure (assert mismatches, diff differences when opted in)
* 3: usage error (bad input, bad options, bad rules)
* 1: internal fault
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from treeq.config.logging import configure_logging
from treeq.domain.errors import ExitCode
from treeq.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from treeq.config.settings import TreeqSettings
    from treeq.services.result import ServiceResult

_ERROR_EXIT_CODES: dict[str, ExitCode] = {
    "USAGE_ERROR": ExitCode.USAGE,
    "INPUT_ERROR": ExitCode.USAGE,
    "INTERNAL_FAULT": ExitCode.INTERNAL,
}


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: TreeqSettings) -> None:
        self.settings = settings

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from treeq.services.stages import enable_reporting

            enable_reporting()

    def emit(self, result: ServiceResult, *, failed: bool = False) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout. Warnings go to stderr so
          they don't pollute piped output. When *failed* is set (a validation
          verdict the caller asked to enforce), exits with code 2.
        * Failure: writes to stderr, exits with the code mapped from the
          error (3 for usage errors, 1 otherwise).
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
            if failed:
                raise SystemExit(ExitCode.MISMATCH)
        else:
            click.echo(output, err=True)
            code = result.error.code if result.error else ""
            raise SystemExit(_ERROR_EXIT_CODES.get(code, ExitCode.INTERNAL))
