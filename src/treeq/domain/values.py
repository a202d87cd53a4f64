"""Value model — the closed set of tree shapes every engine operates on.

A value is one of six kinds, carried as the native JSON-compatible types::

    null     None
    boolean  bool
    number   int | float   (finite; bool is never a number)
    string   str
    array    list
    object   dict[str, value]   (insertion order kept, keys unique)

:func:`value_kind` classifies a value exhaustively, so traversals can
``match`` on the kind and stay total. Anything outside the set is a usage
error, raised before an engine starts work.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any, TypeAlias

from treeq.domain.errors import DepthLimitError, UsageError

Value: TypeAlias = "None | bool | int | float | str | list[Value] | dict[str, Value]"

DEFAULT_MAX_DEPTH = 256


class ValueKind(StrEnum):
    """The six value kinds."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


CONTAINER_KINDS = frozenset({ValueKind.ARRAY, ValueKind.OBJECT})


def value_kind(value: Any) -> ValueKind:
    """Classify *value* into one of the six kinds.

    Raises:
        UsageError: If *value* is not a JSON-compatible Python object.
    """
    # bool before int: bool subclasses int.
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.NUMBER
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"Non-finite number {value!r} is not a valid value"
            raise UsageError(msg)
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    msg = f"Unsupported value type: {type(value).__name__}"
    raise UsageError(msg, detail={"type": type(value).__name__})


def type_name(value: Any) -> str:
    """Return the reporting name of *value*'s type.

    Numbers split into ``integer`` and ``number`` (non-integral or float).
    """
    kind = value_kind(value)
    if kind is ValueKind.NUMBER and isinstance(value, int):
        return "integer"
    return kind.value


def check_value(value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
    """Verify that a whole tree is well-formed and within *max_depth*.

    Walks the tree with an explicit stack, so arbitrarily deep input is
    rejected with :class:`DepthLimitError` instead of exhausting the
    interpreter's recursion limit.
    """
    stack: list[tuple[Any, int]] = [(value, 0)]
    while stack:
        node, depth = stack.pop()
        kind = value_kind(node)
        if kind not in CONTAINER_KINDS:
            continue
        if depth >= max_depth:
            msg = f"Value nests deeper than the limit of {max_depth}"
            raise DepthLimitError(msg, detail={"max_depth": max_depth})
        if kind is ValueKind.OBJECT:
            for key, child in node.items():
                if not isinstance(key, str):
                    msg = f"Object keys must be strings, got {type(key).__name__}"
                    raise UsageError(msg)
                stack.append((child, depth + 1))
        else:
            stack.extend((child, depth + 1) for child in node)


def values_equal(left: Any, right: Any) -> bool:
    """Structural equality over the value model.

    Kinds must match, so ``True`` never equals ``1``. Numbers compare by
    numeric value. Object key order is irrelevant.
    """
    kind = value_kind(left)
    if kind is not value_kind(right):
        return False
    match kind:
        case ValueKind.ARRAY:
            return len(left) == len(right) and all(
                values_equal(a, b) for a, b in zip(left, right, strict=True)
            )
        case ValueKind.OBJECT:
            if left.keys() != right.keys():
                return False
            return all(values_equal(child, right[key]) for key, child in left.items())
        case _:
            return bool(left == right)


def copy_value(value: Any) -> Any:
    """Return an independent copy of *value* (no shared containers)."""
    match value_kind(value):
        case ValueKind.ARRAY:
            return [copy_value(item) for item in value]
        case ValueKind.OBJECT:
            return {key: copy_value(child) for key, child in value.items()}
        case _:
            return value
