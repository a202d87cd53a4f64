"""Closed vocabularies shared by the engines: type tags and merge policies."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from treeq.domain.values import ValueKind, value_kind


class TypeTag(StrEnum):
    """Expected type of a field in a rule set."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"

    def matches(self, value: Any) -> bool:
        kind = value_kind(value)
        if self is TypeTag.INTEGER:
            return kind is ValueKind.NUMBER and isinstance(value, int)
        return kind.value == self.value


class MergePolicy(StrEnum):
    """Conflict resolution strategy for the merge engine."""

    LAST_WINS = "last-wins"
    DEEP_MERGE = "deep-merge"
    ARRAY_REPLACE = "array-replace"
