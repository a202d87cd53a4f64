"""Canonical path addressing.

A :class:`ValuePath` names one location inside a value tree as an ordered
tuple of segments: ``str`` segments are object keys, ``int`` segments are
array indexes, and the empty tuple is the root.

The canonical text form is the only identifier exchanged with callers::

    $                      root
    $["user"]["tags"][0]   key, key, index
    $["quote\\"key"]       keys are JSON string literals

Parsing is the exact inverse of rendering: ``ValuePath.parse(str(p)) == p``
for every path, including keys containing ``"`` or ``\\``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeAlias

from treeq.domain.errors import InternalFault, PathSyntaxError

PathSegment: TypeAlias = "str | int"

ROOT_SIGIL = "$"


class _Missing:
    """Sentinel for a path that does not resolve inside a value."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _check_segment(segment: object) -> PathSegment:
    if isinstance(segment, str):
        return segment
    if isinstance(segment, int) and not isinstance(segment, bool) and segment >= 0:
        return segment
    msg = f"Path segments must be str keys or non-negative int indexes, got {segment!r}"
    raise PathSyntaxError(msg)


def _encode_segment(segment: PathSegment) -> str:
    if isinstance(segment, str):
        return f"[{json.dumps(segment, ensure_ascii=False)}]"
    return f"[{segment}]"


@dataclass(frozen=True)
class ValuePath:
    """Immutable, hashable address of a node inside a value tree."""

    segments: tuple[PathSegment, ...] = ()

    def __post_init__(self) -> None:
        checked = tuple(_check_segment(s) for s in self.segments)
        object.__setattr__(self, "segments", checked)

    # ── Construction ──────────────────────────────────────────────────

    @classmethod
    def root(cls) -> ValuePath:
        return cls(())

    @classmethod
    def of(cls, *segments: PathSegment) -> ValuePath:
        """Build a path from positional segments: ``ValuePath.of("a", 0)``."""
        return cls(tuple(segments))

    @classmethod
    def parse(cls, text: str) -> ValuePath:
        """Parse canonical path text (``$["a"][0]``).

        Raises:
            PathSyntaxError: On any deviation from the canonical grammar.
        """
        if not text.startswith(ROOT_SIGIL):
            raise _syntax_error(text, "path must start with `$`")

        segments: list[PathSegment] = []
        cursor = 1
        end = len(text)
        while cursor < end:
            if text[cursor] != "[":
                raise _syntax_error(text, f"expected `[` at offset {cursor}")
            cursor += 1
            if cursor >= end:
                raise _syntax_error(text, "path cannot end inside `[`")

            if text[cursor] == '"':
                start = cursor
                cursor += 1
                escaped = False
                while cursor < end:
                    char = text[cursor]
                    if escaped:
                        escaped = False
                    elif char == "\\":
                        escaped = True
                    elif char == '"':
                        break
                    cursor += 1
                if cursor >= end:
                    raise _syntax_error(text, "unterminated quoted key")
                literal = text[start : cursor + 1]
                cursor += 1
                if cursor >= end or text[cursor] != "]":
                    raise _syntax_error(text, f"expected `]` at offset {cursor}")
                try:
                    key = json.loads(literal)
                except json.JSONDecodeError as exc:
                    raise _syntax_error(text, f"invalid quoted key: {exc.msg}") from exc
                segments.append(key)
                cursor += 1
                continue

            start = cursor
            while cursor < end and "0" <= text[cursor] <= "9":
                cursor += 1
            if start == cursor:
                raise _syntax_error(
                    text, f"expected quoted key or numeric index at offset {cursor}"
                )
            if cursor - start > 1 and text[start] == "0":
                raise _syntax_error(text, f"index at offset {start} has a leading zero")
            if cursor >= end or text[cursor] != "]":
                raise _syntax_error(text, f"expected `]` at offset {cursor}")
            segments.append(int(text[start:cursor]))
            cursor += 1

        return cls(tuple(segments))

    @classmethod
    def parse_dotted(cls, text: str) -> ValuePath:
        """Parse dot-delimited object-key notation (``meta.blocked``)."""
        if not text:
            raise _syntax_error(text, "path must not be empty")
        parts = text.split(".")
        if any(part == "" for part in parts):
            raise _syntax_error(text, "dotted path has an empty segment")
        return cls(tuple(parts))

    @classmethod
    def parse_rule_path(cls, text: str) -> ValuePath:
        """Parse a rule-file path in either canonical or dotted notation."""
        if text.startswith(ROOT_SIGIL):
            return cls.parse(text)
        return cls.parse_dotted(text)

    # ── Composition ───────────────────────────────────────────────────

    def key(self, key: str) -> ValuePath:
        return ValuePath((*self.segments, key))

    def index(self, index: int) -> ValuePath:
        return ValuePath((*self.segments, index))

    def __truediv__(self, segment: PathSegment) -> ValuePath:
        return ValuePath((*self.segments, segment))

    def concat(self, other: ValuePath) -> ValuePath:
        return ValuePath((*self.segments, *other.segments))

    @property
    def is_root(self) -> bool:
        return not self.segments

    def is_prefix_of(self, other: ValuePath) -> bool:
        """True when *other* is this path or lies beneath it."""
        n = len(self.segments)
        return n <= len(other.segments) and other.segments[:n] == self.segments

    def lookup(self, value: Any) -> Any:
        """Resolve this path inside *value*; :data:`MISSING` when absent."""
        current = value
        for segment in self.segments:
            if isinstance(segment, str):
                if not isinstance(current, dict) or segment not in current:
                    return MISSING
                current = current[segment]
            else:
                if not isinstance(current, list) or segment >= len(current):
                    return MISSING
                current = current[segment]
        return current

    def sort_key(self) -> tuple[tuple[int, PathSegment], ...]:
        """Total order over paths: keys sort before indexes at each position."""
        return tuple((0, s) if isinstance(s, str) else (1, s) for s in self.segments)

    # ── Rendering ─────────────────────────────────────────────────────

    def __str__(self) -> str:
        return ROOT_SIGIL + "".join(_encode_segment(s) for s in self.segments)

    def __repr__(self) -> str:
        return f"ValuePath({str(self)!r})"

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[PathSegment]:
        return iter(self.segments)


def _syntax_error(text: str, reason: str) -> PathSyntaxError:
    msg = f"invalid canonical path `{text}`: {reason}"
    return PathSyntaxError(msg, detail={"input": text, "reason": reason})


def ensure_round_trip(path: ValuePath) -> ValuePath:
    """Re-parse the rendered form of *path* and insist it is unchanged.

    Raises:
        InternalFault: If rendering and parsing disagree.
    """
    rendered = str(path)
    try:
        reparsed = ValuePath.parse(rendered)
    except PathSyntaxError as exc:
        msg = f"Rendered path {rendered!r} does not parse back"
        raise InternalFault(msg, detail={"path": rendered}) from exc
    if reparsed != path:
        msg = f"Rendered path {rendered!r} does not round-trip"
        raise InternalFault(msg, detail={"path": rendered})
    return path
