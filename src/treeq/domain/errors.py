"""Typed failures raised by the engine, and the process exit codes they map to.

Two families reach callers:

* :class:`UsageError`: the caller handed the engine something it cannot
  work with (bad path syntax, duplicate pairing key, cyclic rules, invalid
  regex, ``min > max``). Always raised eagerly at parse/load time.
* :class:`InternalFault`: an engine invariant was violated.

Validation mismatches and diff items are *not* errors; they are returned
as data so a full pass always completes.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Process exit status of the ``treeq`` CLI."""

    OK = 0
    INTERNAL = 1
    MISMATCH = 2
    USAGE = 3


class TreeqError(Exception):
    """Base exception carrying a message and structured detail."""

    code = "TREEQ_ERROR"
    exit_code = ExitCode.INTERNAL

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(message)


class UsageError(TreeqError, ValueError):
    """Input or options the engine refuses to process."""

    code = "USAGE_ERROR"
    exit_code = ExitCode.USAGE


class PathSyntaxError(UsageError):
    """A canonical or dotted path could not be parsed."""


class DepthLimitError(UsageError):
    """A value tree nests deeper than the configured limit."""


class RuleLoadError(UsageError):
    """A rule file is missing, malformed, cyclic, or self-contradictory."""


class InternalFault(TreeqError, RuntimeError):
    """An engine invariant was violated."""

    code = "INTERNAL_FAULT"
