"""Policy-based merge engine.

Overlays fold left-to-right onto a copy of the base. At every merge point
the effective policy comes from :class:`PolicyTable`: the override whose
path is the longest prefix of the current path, ties going to the override
declared last, falling back to the default policy.

Policies:
    last-wins      two objects overlay one level: left-only keys survive and
                   each overlay key replaces its value wholesale; anything
                   else is replaced. Children on the route to a more
                   specific override still merge under that override.
    deep-merge     objects merge per key, arrays per index; otherwise replace
    array-replace  objects merge per key; arrays are replaced wholesale

The result is canonicalized, so key order never depends on input order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from treeq.domain.canon import canonicalize
from treeq.domain.errors import UsageError
from treeq.domain.paths import ValuePath
from treeq.domain.types import MergePolicy
from treeq.domain.values import (
    DEFAULT_MAX_DEPTH,
    ValueKind,
    check_value,
    copy_value,
    value_kind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathPolicyOverride:
    """Merge policy bound to a subtree."""

    path: ValuePath
    policy: MergePolicy


def parse_policy(text: str) -> MergePolicy:
    try:
        return MergePolicy(text)
    except ValueError as exc:
        choices = ", ".join(p.value for p in MergePolicy)
        msg = f"unknown merge policy {text!r} (expected one of: {choices})"
        raise UsageError(msg) from exc


def parse_policy_override(text: str) -> PathPolicyOverride:
    """Parse ``PATH=POLICY`` (``cfg.tags=array-replace`` or ``$["cfg"]["tags"]=last-wins``).

    The split happens at the last ``=`` since quoted keys may contain one.
    """
    path_text, sep, policy_text = text.rpartition("=")
    if not sep or not path_text:
        msg = f"policy override {text!r} must look like PATH=POLICY"
        raise UsageError(msg)
    return PathPolicyOverride(ValuePath.parse_rule_path(path_text), parse_policy(policy_text))


class PolicyTable:
    """Longest-prefix policy lookup, built once per merge call.

    Overrides are ordered by path length descending, then declaration
    order descending, so the first prefix hit during a scan is the winner.
    """

    def __init__(
        self, default: MergePolicy, overrides: Iterable[PathPolicyOverride] = ()
    ) -> None:
        self.default = default
        declared = list(enumerate(overrides))
        declared.sort(key=lambda pair: (len(pair[1].path), pair[0]), reverse=True)
        self._entries = tuple(override for _, override in declared)

    def resolve(self, path: ValuePath) -> MergePolicy:
        for override in self._entries:
            if override.path.is_prefix_of(path):
                return override.policy
        return self.default

    def leads_to_override(self, path: ValuePath, *, strict: bool = True) -> bool:
        """True when an override is declared beneath *path*.

        With ``strict=False`` an override at *path* itself also counts.
        """
        return any(
            path.is_prefix_of(o.path) and (len(o.path) > len(path) or not strict)
            for o in self._entries
        )


def merge(
    base: Any,
    overlays: Sequence[Any],
    default_policy: MergePolicy = MergePolicy.DEEP_MERGE,
    overrides: Iterable[PathPolicyOverride] = (),
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Merge *overlays* onto *base* and return a fresh canonical tree."""
    check_value(base, max_depth=max_depth)
    for overlay in overlays:
        check_value(overlay, max_depth=max_depth)

    table = PolicyTable(default_policy, overrides)
    merged = copy_value(base)
    for overlay in overlays:
        merged = _merge_at(ValuePath.root(), merged, overlay, table)

    logger.debug("Merged %d overlays (default policy %s)", len(overlays), default_policy)
    return canonicalize(merged, max_depth=max_depth)


def _merge_at(path: ValuePath, left: Any, right: Any, table: PolicyTable) -> Any:
    policy = table.resolve(path)
    left_kind = value_kind(left)
    right_kind = value_kind(right)

    if policy is MergePolicy.LAST_WINS:
        if left_kind is ValueKind.OBJECT and right_kind is ValueKind.OBJECT:
            return _overlay_keys(path, left, right, table)
        if left_kind is right_kind is ValueKind.ARRAY and table.leads_to_override(path):
            return _replace_items_toward_overrides(path, left, right, table)
        return copy_value(right)

    if left_kind is ValueKind.OBJECT and right_kind is ValueKind.OBJECT:
        merged = {key: copy_value(child) for key, child in left.items()}
        for key, child in right.items():
            if key in left:
                merged[key] = _merge_at(path.key(key), left[key], child, table)
            else:
                merged[key] = copy_value(child)
        return merged

    if left_kind is ValueKind.ARRAY and right_kind is ValueKind.ARRAY:
        if policy is MergePolicy.ARRAY_REPLACE:
            return copy_value(right)
        items: list[Any] = []
        for position in range(max(len(left), len(right))):
            if position < len(left) and position < len(right):
                child = _merge_at(path.index(position), left[position], right[position], table)
                items.append(child)
            elif position < len(left):
                items.append(copy_value(left[position]))
            else:
                items.append(copy_value(right[position]))
        return items

    return copy_value(right)


def _overlay_keys(
    path: ValuePath, left: dict[str, Any], right: dict[str, Any], table: PolicyTable
) -> dict[str, Any]:
    """``last-wins`` on two objects: one level of key overlay.

    Keys only on the left survive. Each overlay key replaces its value
    wholesale, unless an override sits at or beneath that key, in which
    case the two children merge under their own policy.
    """
    merged = {key: copy_value(child) for key, child in left.items()}
    for key, child in right.items():
        child_path = path.key(key)
        if key in left and table.leads_to_override(child_path, strict=False):
            merged[key] = _merge_at(child_path, left[key], child, table)
        else:
            merged[key] = copy_value(child)
    return merged


def _replace_items_toward_overrides(
    path: ValuePath, left: list[Any], right: list[Any], table: PolicyTable
) -> list[Any]:
    """``last-wins`` on two arrays with an override below *path*.

    The right array still replaces the left, but elements on the way to the
    override merge under their own policy.
    """
    items: list[Any] = []
    for position, child in enumerate(right):
        child_path = path.index(position)
        if position < len(left) and table.leads_to_override(child_path, strict=False):
            items.append(_merge_at(child_path, left[position], child, table))
        else:
            items.append(copy_value(child))
    return items
