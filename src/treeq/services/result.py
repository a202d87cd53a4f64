"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: every service method returns a ServiceResult. Engine errors are
converted to ``ok=False`` results; validation mismatches and diff items are
data, so those operations report ``ok=True``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation ran to completion.
        op: Name of the operation (e.g. ``"diff"``).
        data: Operation-specific, JSON-ready payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing spans when verbose).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
