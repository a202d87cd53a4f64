"""AssertService — validate records against a rule file or a JSON Schema."""

from __future__ import annotations

import logging
from pathlib import Path

from treeq.domain.errors import TreeqError, UsageError
from treeq.domain.rules import load_rules
from treeq.domain.schema import compile_schema, validate_schema
from treeq.domain.validate import Mismatch, validate
from treeq.infrastructure.formats import (
    read_document,
    read_path,
    read_rule_file,
    resolve_rule_file,
)
from treeq.services.base import BaseService
from treeq.services.result import ServiceResult
from treeq.services.stages import record, reported, stage

logger = logging.getLogger(__name__)


class AssertService(BaseService):
    """Check a record file against a rule set or a JSON Schema."""

    @reported("assert")
    def check(
        self,
        source: Path,
        rules: Path | None = None,
        *,
        schema: Path | None = None,
        input_format: str | None = None,
    ) -> ServiceResult:
        """Validate *source* against exactly one of *rules* or *schema*.

        A failed validation still returns ``ok=True``; the verdict is
        ``data["matched"]`` and the failures are ``data["mismatches"]``.
        """
        op = "assert"
        try:
            if (rules is None) == (schema is None):
                msg = "exactly one of --rules or --schema is required"
                raise UsageError(msg)
            with stage("load_rules"):
                if rules is not None:
                    rule_set = load_rules(
                        str(rules.resolve()), read_rule_file, resolve=resolve_rule_file
                    )
                    record(fields=len(rule_set.fields))
                elif schema is not None:
                    validator = compile_schema(read_document(schema), max_depth=self.max_depth)
            with stage("read"):
                records = read_path(source, input_format, coerce_csv=self.settings.io.coerce_csv)
                record(records=len(records))
            with stage("validate"):
                mismatches: list[Mismatch]
                if rules is not None:
                    mismatches = validate(rule_set, records, max_depth=self.max_depth)
                else:
                    mismatches = validate_schema(validator, records, max_depth=self.max_depth)
                record(mismatches=len(mismatches), max_depth=self.max_depth)
        except TreeqError as exc:
            return self._failure(op, exc)

        logger.debug(
            "Validated %d records from %s: %d mismatches", len(records), source, len(mismatches)
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "input": str(source),
                "mode": "rules" if rules is not None else "schema",
                "rules": str(rules) if rules is not None else None,
                "schema": str(schema) if schema is not None else None,
                "matched": not mismatches,
                "record_count": len(records),
                "mismatch_count": len(mismatches),
                "mismatches": [m.as_data() for m in mismatches],
            },
        )
