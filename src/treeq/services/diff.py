"""DiffService — structural diff of two record files."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from treeq.domain.diff import diff
from treeq.domain.errors import TreeqError
from treeq.domain.paths import ValuePath
from treeq.infrastructure.formats import read_path
from treeq.services.base import BaseService
from treeq.services.result import ServiceResult
from treeq.services.stages import record, reported, stage

logger = logging.getLogger(__name__)


class DiffService(BaseService):
    """Compare two record files and report every difference."""

    @reported("diff")
    def diff(
        self,
        left: Path,
        right: Path,
        *,
        key: str | None = None,
        ignore_paths: Sequence[str] = (),
        value_diff_cap: int | None = None,
        input_format: str | None = None,
    ) -> ServiceResult:
        """Diff *left* against *right*.

        *key* and *ignore_paths* are record-relative paths in dotted or
        canonical notation. ``data`` is the report plus ``matched``.
        """
        op = "diff"
        cap = value_diff_cap if value_diff_cap is not None else self.settings.diff.value_diff_cap
        coerce = self.settings.io.coerce_csv
        try:
            key_path = ValuePath.parse_rule_path(key) if key is not None else None
            ignored = [ValuePath.parse_rule_path(text) for text in ignore_paths]
            with stage("read"):
                left_records = read_path(left, input_format, coerce_csv=coerce)
                right_records = read_path(right, input_format, coerce_csv=coerce)
                record(left_records=len(left_records), right_records=len(right_records))
            with stage("compare"):
                report = diff(
                    left_records,
                    right_records,
                    key_path,
                    ignored,
                    cap,
                    max_depth=self.max_depth,
                )
                record(
                    value_diffs=report.values.total,
                    truncated=report.values.truncated,
                    shared_key_paths=len(report.key_paths.shared),
                    max_depth=self.max_depth,
                )
        except TreeqError as exc:
            return self._failure(op, exc)

        logger.debug(
            "Diffed %s vs %s: %d value diffs (%d shown)",
            left,
            right,
            report.values.total,
            len(report.values.items),
        )

        warnings: list[str] = []
        if report.values.truncated:
            warnings.append(
                f"value diffs truncated: showing {len(report.values.items)} "
                f"of {report.values.total}"
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "left": str(left),
                "right": str(right),
                "key": str(key_path) if key_path is not None else None,
                "matched": not report.has_differences,
                **report.as_data(),
            },
            warnings=warnings,
        )
