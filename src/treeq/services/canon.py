"""CanonService — read a document and render its canonical form."""

from __future__ import annotations

import logging
from pathlib import Path

from treeq.domain.canon import canonicalize
from treeq.domain.errors import TreeqError
from treeq.infrastructure.formats import (
    load_text,
    normalize_timestamps,
    read_text,
    resolve_format,
    write_document,
)
from treeq.services.base import BaseService
from treeq.services.result import ServiceResult
from treeq.services.stages import record, reported, stage

logger = logging.getLogger(__name__)


class CanonService(BaseService):
    """Canonicalize one input document."""

    @reported("canon")
    def canonicalize(
        self,
        source: Path,
        *,
        input_format: str | None = None,
        output_format: str | None = None,
        sort_keys: bool | None = None,
        normalize_time: bool | None = None,
    ) -> ServiceResult:
        """Read *source*, canonicalize it, and render it.

        ``data["value"]`` is the canonical tree; ``data["document"]`` is that
        tree rendered in the output format (the input's format by default).
        With *normalize_time*, RFC 3339 strings are also rewritten in UTC.
        """
        op = "canon"
        if sort_keys is None:
            sort_keys = self.settings.canon.sort_keys
        if normalize_time is None:
            normalize_time = self.settings.canon.normalize_time
        try:
            fmt = resolve_format(input_format, source)
            out_fmt = self._output_format(output_format, fmt)
            with stage("read"):
                value = load_text(read_text(source), fmt, coerce_csv=self.settings.io.coerce_csv)
                record(records=len(value) if isinstance(value, list) else 1)
            with stage("canon"):
                canonical = canonicalize(value, sort_keys, max_depth=self.max_depth)
                if normalize_time:
                    canonical = normalize_timestamps(canonical)
                record(max_depth=self.max_depth, normalize_time=normalize_time)
            with stage("render"):
                document = write_document(canonical, out_fmt)
                record(output_format=out_fmt.value)
        except TreeqError as exc:
            return self._failure(op, exc)

        record_count = len(canonical) if isinstance(canonical, list) else 1
        logger.debug("Canonicalized %s (%d records, %s -> %s)", source, record_count, fmt, out_fmt)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "input": str(source),
                "format": fmt.value,
                "output_format": out_fmt.value,
                "sort_keys": sort_keys,
                "normalize_time": normalize_time,
                "record_count": record_count,
                "value": canonical,
                "document": document,
            },
        )
