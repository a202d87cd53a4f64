"""Rule validation — check records against a resolved :class:`RuleSet`.

Every check runs to completion and every failure is collected; nothing
here raises on a content mismatch. Output order is fixed:

1. ``count`` (once, at path ``$``)
2. per record, index ascending:
   ``required_keys`` → ``forbid_keys`` → ``fields`` (path order)

Within one field: ``nullable`` short-circuits on ``null``; otherwise
``type``, ``enum``, ``pattern`` and ``range`` all apply in that order.
A field whose path is absent from a record is skipped; presence is the
job of ``required_keys``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from treeq.domain.canon import canonicalize
from treeq.domain.paths import MISSING
from treeq.domain.rules import CountRule, FieldEntry, RuleSet
from treeq.domain.values import (
    DEFAULT_MAX_DEPTH,
    ValueKind,
    check_value,
    type_name,
    value_kind,
    values_equal,
)


@dataclass(frozen=True)
class Mismatch:
    """One validation failure."""

    path: str
    rule_kind: str
    reason: str
    actual: Any = None
    expected: Any = None

    def as_data(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "rule_kind": self.rule_kind,
            "reason": self.reason,
            "actual": self.actual,
            "expected": self.expected,
        }


def validate(
    rules: RuleSet, records: Iterable[Any], *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[Mismatch]:
    """Validate *records* against *rules*. An empty list means pass."""
    records = list(records)
    for record in records:
        check_value(record, max_depth=max_depth)

    mismatches: list[Mismatch] = []
    if rules.count is not None:
        mismatches.extend(_check_count(rules.count, len(records)))

    for index, record in enumerate(records):
        for rule_path in rules.required_keys:
            if rule_path.path.lookup(record) is MISSING:
                mismatches.append(
                    Mismatch(
                        rule_path.for_record(index),
                        "required_keys",
                        "missing_key",
                        None,
                        "present",
                    )
                )
        for rule_path in rules.forbid_keys:
            actual = rule_path.path.lookup(record)
            if actual is not MISSING:
                mismatches.append(
                    Mismatch(
                        rule_path.for_record(index),
                        "forbid_keys",
                        "forbidden_key",
                        canonicalize(actual),
                        "absent",
                    )
                )
        for entry in rules.fields:
            mismatches.extend(_check_field(index, record, entry))

    return mismatches


def _check_count(count: CountRule, actual: int) -> list[Mismatch]:
    found: list[Mismatch] = []
    if count.min is not None and actual < count.min:
        found.append(Mismatch("$", "count", "below_min_count", actual, count.min))
    if count.max is not None and actual > count.max:
        found.append(Mismatch("$", "count", "above_max_count", actual, count.max))
    return found


def _check_field(index: int, record: Any, entry: FieldEntry) -> list[Mismatch]:
    actual = entry.path.path.lookup(record)
    if actual is MISSING:
        return []

    rule = entry.rule
    path = entry.path.for_record(index)

    if actual is None:
        if rule.nullable:
            return []
        return [Mismatch(path, "nullable", "null_not_allowed", None, False)]

    found: list[Mismatch] = []

    if rule.type is not None and not rule.type.matches(actual):
        found.append(Mismatch(path, "type", "type_mismatch", type_name(actual), rule.type.value))

    if rule.enum is not None and not any(values_equal(actual, allowed) for allowed in rule.enum):
        found.append(
            Mismatch(path, "enum", "enum_mismatch", canonicalize(actual), canonicalize(rule.enum))
        )

    if rule.pattern is not None and rule.regex is not None:
        if not isinstance(actual, str):
            found.append(
                Mismatch(path, "pattern", "pattern_not_string", type_name(actual), rule.pattern)
            )
        elif rule.regex.search(actual) is None:
            found.append(Mismatch(path, "pattern", "pattern_mismatch", actual, rule.pattern))

    if rule.range is not None:
        bounds = rule.range
        if value_kind(actual) is not ValueKind.NUMBER:
            found.append(
                Mismatch(
                    path,
                    "range",
                    "not_numeric",
                    type_name(actual),
                    {"type": "number", **bounds.as_data()},
                )
            )
        else:
            if bounds.min is not None and actual < bounds.min:
                found.append(Mismatch(path, "range", "below_min", actual, bounds.min))
            if bounds.max is not None and actual > bounds.max:
                found.append(Mismatch(path, "range", "above_max", actual, bounds.max))

    return found
