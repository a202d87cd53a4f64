"""BaseService — shared foundation for the treeq services.

Every service receives the invocation's :class:`TreeqSettings`. Engine
errors (:class:`~treeq.domain.errors.TreeqError`) are converted to failed
results here; anything else propagates.
"""

from __future__ import annotations

import logging

from treeq.config.settings import TreeqSettings
from treeq.domain.errors import TreeqError
from treeq.infrastructure.formats import Format, resolve_format
from treeq.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class CanonService(BaseService):
            @reported("canon")
            def canonicalize(self, source: Path) -> ServiceResult:
                try:
                    ...
                except TreeqError as exc:
                    return self._failure("canon", exc)
    """

    def __init__(self, settings: TreeqSettings | None = None) -> None:
        self._settings = settings if settings is not None else TreeqSettings()

    @property
    def settings(self) -> TreeqSettings:
        return self._settings

    @property
    def max_depth(self) -> int:
        return self._settings.engine.max_depth

    @staticmethod
    def _output_format(explicit: str | None, input_format: Format) -> Format:
        """Output format: the explicit choice, else the input's format."""
        return resolve_format(explicit, None) if explicit else input_format

    @staticmethod
    def _failure(op: str, exc: TreeqError) -> ServiceResult:
        logger.debug("%s failed: %s (%s)", op, exc.message, exc.code)
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=exc.code, message=exc.message, detail=exc.detail),
        )

