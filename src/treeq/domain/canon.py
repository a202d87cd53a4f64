"""Canonicalizer — deterministic normal form of a value tree.

Pure functions. Object keys are reordered lexicographically (code point
order, which matches UTF-8 byte order); arrays are never reordered.
Scalars pass through untouched: deciding that ``"true"`` is a boolean is
the format layer's job, done before a tree reaches this module.

INVARIANTS:
    canonicalize(canonicalize(v)) == canonicalize(v)
    objects with the same pairs in different order canonicalize identically
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from treeq.domain.values import DEFAULT_MAX_DEPTH, ValueKind, check_value, value_kind


def canonicalize(value: Any, sort_keys: bool = True, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Return a freshly built canonical copy of *value*.

    Args:
        value: Any tree in the value model.
        sort_keys: Sort object keys. When False, input key order is kept and
            only the copy is produced.
        max_depth: Nesting limit enforced before rebuilding.
    """
    check_value(value, max_depth=max_depth)
    return _rebuild(value, sort_keys)


def canonicalize_records(
    values: Iterable[Any], sort_keys: bool = True, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[Any]:
    """Canonicalize each record of a sequence independently."""
    return [canonicalize(v, sort_keys, max_depth=max_depth) for v in values]


def to_canonical_json(value: Any) -> str:
    """Compact, deterministic JSON text for *value* (sorted keys, no spaces)."""
    return json.dumps(
        canonicalize(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _rebuild(value: Any, sort_keys: bool) -> Any:
    match value_kind(value):
        case ValueKind.OBJECT:
            items = sorted(value.items()) if sort_keys else value.items()
            return {key: _rebuild(child, sort_keys) for key, child in items}
        case ValueKind.ARRAY:
            return [_rebuild(item, sort_keys) for item in value]
        case _:
            return value
