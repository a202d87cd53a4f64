"""Structural diff engine.

Compares two record sequences and reports typed differences in a fixed
traversal order, so identical inputs always produce an identical report.

Pairing:
    * positional by default: record ``i`` on the left meets record ``i``
      on the right; indexes present on one side only are listed in
      ``keys.left_only`` / ``keys.right_only`` and not value-diffed.
    * keyed when ``key_path`` is given: each side is indexed by the value
      at that record-relative path. Missing or duplicate keys are usage
      errors. Unpaired records are listed by their own side's index.

Traversal is depth-first: object keys in lexicographic order, array
elements in index order. A subtree whose record-relative path (or an
ancestor's) is in ``ignore_paths`` is neither descended nor reported.

Independently of pairing, ``key_paths`` compares the structure of the two
sides: every record-relative object-key path found in any record, with
array positions collapsed, split into ``left_only``, ``right_only`` and
``shared``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from treeq.domain.canon import canonicalize, to_canonical_json
from treeq.domain.errors import UsageError
from treeq.domain.paths import MISSING, ValuePath, ensure_round_trip
from treeq.domain.values import (
    DEFAULT_MAX_DEPTH,
    ValueKind,
    check_value,
    value_kind,
    values_equal,
)

DEFAULT_VALUE_DIFF_CAP = 100


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueDiff:
    """One difference at an absolute path (``$[record]...``)."""

    path: ValuePath
    actual: Any
    expected: Any

    def as_data(self) -> dict[str, Any]:
        return {"path": str(self.path), "actual": self.actual, "expected": self.expected}


@dataclass(frozen=True)
class CountSummary:
    left: int
    right: int

    @property
    def delta(self) -> int:
        return self.right - self.left

    @property
    def equal(self) -> bool:
        return self.left == self.right


@dataclass(frozen=True)
class KeySummary:
    left_only: tuple[ValuePath, ...] = ()
    right_only: tuple[ValuePath, ...] = ()


@dataclass(frozen=True)
class KeyPathSummary:
    """Record-relative object-key paths found on each side, across all records.

    Array positions are collapsed: ``$["tags"]["name"]`` stands for the
    ``name`` key of any element of ``tags``.
    """

    left_only: tuple[ValuePath, ...] = ()
    right_only: tuple[ValuePath, ...] = ()
    shared: tuple[ValuePath, ...] = ()


@dataclass(frozen=True)
class ValueSection:
    total: int = 0
    truncated: bool = False
    items: tuple[ValueDiff, ...] = ()


@dataclass(frozen=True)
class DiffReport:
    """Deterministic result of comparing two record sequences."""

    counts: CountSummary
    keys: KeySummary = field(default_factory=KeySummary)
    key_paths: KeyPathSummary = field(default_factory=KeyPathSummary)
    ignored_paths: tuple[ValuePath, ...] = ()
    values: ValueSection = field(default_factory=ValueSection)

    @property
    def has_differences(self) -> bool:
        """True unless both sides have the same records with equal content."""
        return (
            not self.counts.equal
            or bool(self.keys.left_only)
            or bool(self.keys.right_only)
            or self.values.total > 0
        )

    def as_data(self) -> dict[str, Any]:
        """JSON-ready mapping with paths in canonical text form."""
        return {
            "counts": {
                "left": self.counts.left,
                "right": self.counts.right,
                "delta": self.counts.delta,
                "equal": self.counts.equal,
            },
            "keys": {
                "left_only": [str(p) for p in self.keys.left_only],
                "right_only": [str(p) for p in self.keys.right_only],
            },
            "key_paths": {
                "left_only": [str(p) for p in self.key_paths.left_only],
                "right_only": [str(p) for p in self.key_paths.right_only],
                "shared": [str(p) for p in self.key_paths.shared],
            },
            "ignored_paths": [str(p) for p in self.ignored_paths],
            "values": {
                "total": self.values.total,
                "truncated": self.values.truncated,
                "items": [item.as_data() for item in self.values.items],
            },
        }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def diff(
    left: Sequence[Any],
    right: Sequence[Any],
    key_path: ValuePath | None = None,
    ignore_paths: Iterable[ValuePath] = (),
    value_diff_cap: int = DEFAULT_VALUE_DIFF_CAP,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> DiffReport:
    """Compare *left* and *right* record sequences.

    Raises:
        UsageError: On a negative cap, malformed records, or (with
            *key_path*) a record lacking the key or a duplicated key.
    """
    if value_diff_cap < 0:
        msg = f"value_diff_cap must be >= 0, got {value_diff_cap}"
        raise UsageError(msg)

    left = list(left)
    right = list(right)
    for record in (*left, *right):
        check_value(record, max_depth=max_depth)

    ignored = tuple(sorted(set(ignore_paths), key=ValuePath.sort_key))

    if key_path is None:
        pairs = [(i, lv, rv) for i, (lv, rv) in enumerate(zip(left, right))]
        left_only = tuple(ValuePath.of(i) for i in range(len(right), len(left)))
        right_only = tuple(ValuePath.of(i) for i in range(len(left), len(right)))
    else:
        left_index = _index_by_key(left, key_path, side="left")
        right_index = _index_by_key(right, key_path, side="right")
        pairs = [
            (li, left[li], right[right_index[key]])
            for key, li in left_index.items()
            if key in right_index
        ]
        left_only = tuple(
            ValuePath.of(li) for key, li in left_index.items() if key not in right_index
        )
        right_only = tuple(
            ValuePath.of(ri) for key, ri in right_index.items() if key not in left_index
        )

    collector = _DiffCollector(value_diff_cap)
    skipped = frozenset(ignored)
    walker = _DiffWalker(skipped, collector)
    for record_index, left_record, right_record in pairs:
        walker.compare(left_record, right_record, ValuePath.root(), ValuePath.of(record_index))

    left_keys = _collect_key_paths(left, skipped)
    right_keys = _collect_key_paths(right, skipped)

    return DiffReport(
        counts=CountSummary(left=len(left), right=len(right)),
        keys=KeySummary(left_only=left_only, right_only=right_only),
        key_paths=KeyPathSummary(
            left_only=_sorted_paths(left_keys - right_keys),
            right_only=_sorted_paths(right_keys - left_keys),
            shared=_sorted_paths(left_keys & right_keys),
        ),
        ignored_paths=ignored,
        values=collector.finish(),
    )


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _index_by_key(records: list[Any], key_path: ValuePath, *, side: str) -> dict[str, int]:
    """Map canonical key text -> record index, in record order."""
    index: dict[str, int] = {}
    for position, record in enumerate(records):
        key_value = key_path.lookup(record)
        if key_value is MISSING:
            msg = f"{side} record $[{position}] has no value at key path {key_path}"
            raise UsageError(
                msg, detail={"side": side, "record": position, "key_path": str(key_path)}
            )
        key_text = to_canonical_json(_integral_numbers(key_value))
        if key_text in index:
            msg = (
                f"duplicate key {key_text} on the {side} side "
                f"(records $[{index[key_text]}] and $[{position}])"
            )
            raise UsageError(
                msg,
                detail={
                    "side": side,
                    "key": key_text,
                    "records": [index[key_text], position],
                    "key_path": str(key_path),
                },
            )
        index[key_text] = position
    return index


class _DiffCollector:
    """Counts every difference; keeps only the first *cap* of them."""

    def __init__(self, cap: int) -> None:
        self.cap = cap
        self.total = 0
        self.items: list[ValueDiff] = []

    def push(self, path: ValuePath, actual: Any, expected: Any) -> None:
        self.total += 1
        if len(self.items) < self.cap:
            item = ValueDiff(ensure_round_trip(path), canonicalize(actual), canonicalize(expected))
            self.items.append(item)

    def finish(self) -> ValueSection:
        return ValueSection(
            total=self.total,
            truncated=self.total > self.cap,
            items=tuple(self.items),
        )


class _DiffWalker:
    def __init__(self, ignored: frozenset[ValuePath], collector: _DiffCollector) -> None:
        self._ignored = ignored
        self._collector = collector

    def compare(self, left: Any, right: Any, rel: ValuePath, base: ValuePath) -> None:
        """Compare one pair of nodes at record-relative path *rel*.

        Ancestors were already checked against the ignore set on the way
        down, so an exact membership test is enough here.
        """
        if rel in self._ignored:
            return

        left_kind = value_kind(left)
        right_kind = value_kind(right)
        if left_kind is not right_kind:
            self._collector.push(base.concat(rel), left, right)
            return

        match left_kind:
            case ValueKind.OBJECT:
                for key in sorted(left.keys() | right.keys()):
                    child = rel.key(key)
                    if key in left and key in right:
                        self.compare(left[key], right[key], child, base)
                    elif child in self._ignored:
                        continue
                    elif key in left:
                        self._collector.push(base.concat(child), left[key], None)
                    else:
                        self._collector.push(base.concat(child), None, right[key])
            case ValueKind.ARRAY:
                for position in range(min(len(left), len(right))):
                    self.compare(left[position], right[position], rel.index(position), base)
                if len(left) != len(right):
                    self._collector.push(base.concat(rel), left, right)
            case _:
                if not values_equal(left, right):
                    self._collector.push(base.concat(rel), left, right)


def _integral_numbers(value: Any) -> Any:
    """Rewrite integral floats as ints so ``1`` and ``1.0`` pair as one key."""
    match value_kind(value):
        case ValueKind.NUMBER if isinstance(value, float) and value.is_integer():
            return int(value)
        case ValueKind.ARRAY:
            return [_integral_numbers(item) for item in value]
        case ValueKind.OBJECT:
            return {key: _integral_numbers(child) for key, child in value.items()}
        case _:
            return value


def _collect_key_paths(records: list[Any], ignored: frozenset[ValuePath]) -> set[ValuePath]:
    found: set[ValuePath] = set()
    for record in records:
        _walk_key_paths(record, ValuePath.root(), ignored, found)
    return found


def _walk_key_paths(
    value: Any, path: ValuePath, ignored: frozenset[ValuePath], found: set[ValuePath]
) -> None:
    if path in ignored:
        return
    match value_kind(value):
        case ValueKind.OBJECT:
            for key, child in value.items():
                child_path = path.key(key)
                if child_path not in ignored:
                    found.add(child_path)
                    _walk_key_paths(child, child_path, ignored, found)
        case ValueKind.ARRAY:
            for item in value:
                _walk_key_paths(item, path, ignored, found)
        case _:
            pass


def _sorted_paths(paths: set[ValuePath]) -> tuple[ValuePath, ...]:
    return tuple(ensure_round_trip(p) for p in sorted(paths, key=ValuePath.sort_key))
