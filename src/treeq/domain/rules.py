"""Rule sets — strict rule-file models, inheritance, and merging.

A rule file is a mapping with five optional keys::

    extends:       ["./base.rules.yaml"]     # string or list of strings
    required_keys: ["id", "meta.owner"]
    forbid_keys:   ["debug"]
    fields:
      score: {type: number, nullable: true, range: {min: 0, max: 100}}
      status: {enum: [active, archived]}
      name: {pattern: "^[a-z]+_[0-9]+$"}
    count: {min: 1, max: 1000}

Unknown keys are rejected by the pydantic models (``extra="forbid"``).
Rule paths use dotted notation (``meta.owner``) or canonical notation
(``$["meta"]["owner"]``).

:func:`load_rules` resolves ``extends`` depth-first. Parents merge
left-to-right and the declaring file merges last, so it wins. A cycle is
detected with the explicit stack of files currently being loaded.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from pydantic import (
    BaseModel,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from treeq.domain.errors import RuleLoadError, UsageError
from treeq.domain.paths import ValuePath, ensure_round_trip
from treeq.domain.types import TypeTag
from treeq.domain.values import check_value

logger = logging.getLogger(__name__)

FIELD_CONSTRAINTS = frozenset({"type", "nullable", "enum", "pattern", "range"})

Number = StrictInt | StrictFloat


# ---------------------------------------------------------------------------
# Rule-file models
# ---------------------------------------------------------------------------


class CountRule(BaseModel):
    """Bounds on the number of records."""

    model_config = {"frozen": True, "extra": "forbid"}

    min: StrictInt | None = Field(default=None, ge=0)
    max: StrictInt | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _bounds_ordered(self) -> CountRule:
        if self.min is not None and self.max is not None and self.min > self.max:
            msg = f"count.min ({self.min}) must be <= count.max ({self.max})"
            raise ValueError(msg)
        return self


class RangeRule(BaseModel):
    """Numeric bounds, both inclusive."""

    model_config = {"frozen": True, "extra": "forbid"}

    min: Number | None = None
    max: Number | None = None

    @model_validator(mode="after")
    def _bounds_ordered(self) -> RangeRule:
        if self.min is not None and self.max is not None and self.min > self.max:
            msg = f"range.min ({self.min}) must be <= range.max ({self.max})"
            raise ValueError(msg)
        return self

    def as_data(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}


class FieldRule(BaseModel):
    """Constraints on the value found at one path of every record."""

    model_config = {"frozen": True, "extra": "forbid"}

    type: TypeTag | None = None
    nullable: StrictBool = False
    enum: list[Any] | None = None
    pattern: StrictStr | None = None
    range: RangeRule | None = None

    @field_validator("enum")
    @classmethod
    def _enum_values_are_values(cls, values: list[Any] | None) -> list[Any] | None:
        if values is not None:
            for value in values:
                check_value(value)
        return values

    @model_validator(mode="after")
    def _constrained_and_compiled(self) -> FieldRule:
        if not (self.model_fields_set & FIELD_CONSTRAINTS):
            msg = "field rule must define at least one of type/nullable/enum/pattern/range"
            raise ValueError(msg)
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                msg = f"invalid pattern {self.pattern!r}: {exc}"
                raise ValueError(msg) from exc
        return self

    @cached_property
    def regex(self) -> re.Pattern[str] | None:
        return re.compile(self.pattern) if self.pattern is not None else None


class RuleFile(BaseModel):
    """One rule file exactly as declared, before ``extends`` is resolved."""

    model_config = {"frozen": True, "extra": "forbid"}

    extends: list[StrictStr] = Field(default_factory=list)
    required_keys: list[StrictStr] = Field(default_factory=list)
    forbid_keys: list[StrictStr] = Field(default_factory=list)
    fields: dict[str, FieldRule] = Field(default_factory=dict)
    count: CountRule | None = None

    @field_validator("extends", mode="before")
    @classmethod
    def _single_extends(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("required_keys", "forbid_keys")
    @classmethod
    def _paths_parse(cls, paths: list[str]) -> list[str]:
        for text in paths:
            ValuePath.parse_rule_path(text)
        return paths

    @field_validator("fields")
    @classmethod
    def _field_paths_parse(cls, fields: dict[str, FieldRule]) -> dict[str, FieldRule]:
        for text in fields:
            ValuePath.parse_rule_path(text)
        return fields


# ---------------------------------------------------------------------------
# Resolved rule set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RulePath:
    """A rule path: the text as declared plus its parsed form."""

    text: str
    path: ValuePath

    @classmethod
    def parse(cls, text: str) -> RulePath:
        return cls(text=text, path=ensure_round_trip(ValuePath.parse_rule_path(text)))

    @property
    def is_canonical(self) -> bool:
        return self.text.startswith("$")

    def for_record(self, index: int) -> str:
        """Absolute path text inside record *index*: ``$[0].meta.id``."""
        if self.is_canonical:
            return f"$[{index}]{str(self.path)[1:]}"
        return f"$[{index}].{self.text}"


@dataclass(frozen=True)
class FieldEntry:
    path: RulePath
    rule: FieldRule


@dataclass(frozen=True)
class RuleSet:
    """An ``extends``-resolved, immutable collection of constraints.

    ``required_keys``/``forbid_keys`` keep first-seen order. ``fields`` is
    kept sorted by path so validation order never depends on file order.
    """

    required_keys: tuple[RulePath, ...] = ()
    forbid_keys: tuple[RulePath, ...] = ()
    fields: tuple[FieldEntry, ...] = ()
    count: CountRule | None = None

    @classmethod
    def from_file(cls, rule_file: RuleFile) -> RuleSet:
        return cls(
            required_keys=_union_paths((), (RulePath.parse(t) for t in rule_file.required_keys)),
            forbid_keys=_union_paths((), (RulePath.parse(t) for t in rule_file.forbid_keys)),
            fields=_sorted_fields(
                FieldEntry(RulePath.parse(text), rule) for text, rule in rule_file.fields.items()
            ),
            count=rule_file.count,
        )

    @classmethod
    def from_mapping(cls, data: Any) -> RuleSet:
        """Build a rule set from one in-memory mapping without ``extends``.

        Raises:
            RuleLoadError: If the mapping is malformed or declares ``extends``.
        """
        rule_file = parse_rule_file(data, reference="<inline>")
        if rule_file.extends:
            msg = "inline rules cannot use `extends`; load them with load_rules()"
            raise RuleLoadError(msg)
        return cls.from_file(rule_file)

    def field_rule(self, text: str) -> FieldRule | None:
        target = ValuePath.parse_rule_path(text)
        for entry in self.fields:
            if entry.path.path == target:
                return entry.rule
        return None

    def as_data(self) -> dict[str, Any]:
        return {
            "required_keys": [p.text for p in self.required_keys],
            "forbid_keys": [p.text for p in self.forbid_keys],
            "fields": {
                e.path.text: e.rule.model_dump(exclude_unset=True, mode="json")
                for e in self.fields
            },
            "count": self.count.model_dump(mode="json") if self.count else None,
        }


def merge_rule_sets(parent: RuleSet, child: RuleSet) -> RuleSet:
    """Combine *parent* and *child*; *child* takes precedence.

    Key lists are unioned in first-seen order. A field path defined on both
    sides takes the child's rule wholesale. ``count`` is the child's when it
    declares one.
    """
    fields = {entry.path.path: entry for entry in parent.fields}
    for entry in child.fields:
        fields[entry.path.path] = entry
    return RuleSet(
        required_keys=_union_paths(parent.required_keys, child.required_keys),
        forbid_keys=_union_paths(parent.forbid_keys, child.forbid_keys),
        fields=_sorted_fields(fields.values()),
        count=child.count if child.count is not None else parent.count,
    )


def _union_paths(first: Iterable[RulePath], second: Iterable[RulePath]) -> tuple[RulePath, ...]:
    seen: dict[ValuePath, RulePath] = {}
    for rule_path in (*first, *second):
        seen.setdefault(rule_path.path, rule_path)
    return tuple(seen.values())


def _sorted_fields(entries: Iterable[FieldEntry]) -> tuple[FieldEntry, ...]:
    return tuple(sorted(entries, key=lambda e: e.path.path.sort_key()))


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


Reader = Callable[[str], Any]
Resolver = Callable[[str, str], str]


def resolve_reference(parent: str, entry: str) -> str:
    """Resolve an ``extends`` entry relative to the file that declares it.

    Purely lexical: no filesystem access and no symlink resolution, so it
    also works for in-memory readers. The CLI passes
    :func:`treeq.infrastructure.formats.resolve_rule_file` instead.
    """
    if posixpath.isabs(entry):
        return posixpath.normpath(entry)
    return posixpath.normpath(posixpath.join(posixpath.dirname(parent), entry))


def parse_rule_file(data: Any, *, reference: str) -> RuleFile:
    """Validate one rule document against the strict rule-file model."""
    if not isinstance(data, dict):
        msg = f"rules file `{reference}` must contain exactly one object"
        raise RuleLoadError(msg, detail={"reference": reference})
    try:
        return RuleFile.model_validate(data)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        msg = f"invalid rules in `{reference}`: {'; '.join(problems)}"
        raise RuleLoadError(msg, detail={"reference": reference, "errors": problems}) from exc


def load_rules(
    reference: str,
    read: Reader,
    *,
    resolve: Resolver = resolve_reference,
) -> RuleSet:
    """Load *reference* and everything it extends into one rule set.

    Args:
        reference: Identifier of the root rule file (usually a path).
        read: Returns the parsed document for a reference.
        resolve: Maps ``(declaring_reference, extends_entry)`` to a reference.

    Raises:
        RuleLoadError: On a cycle, an unreadable reference, or a malformed
            or self-contradictory rule file.
    """
    return _load(reference, read, resolve, [])


def _load(reference: str, read: Reader, resolve: Resolver, stack: list[str]) -> RuleSet:
    if reference in stack:
        chain = [*stack[stack.index(reference) :], reference]
        msg = f"rules extends cycle detected: {' -> '.join(chain)}"
        raise RuleLoadError(msg, detail={"cycle": chain})

    stack.append(reference)
    try:
        rule_file = parse_rule_file(_read(reference, read), reference=reference)
        merged = RuleSet()
        for entry in rule_file.extends:
            parent = _load(resolve(reference, entry), read, resolve, stack)
            merged = merge_rule_sets(merged, parent)
        resolved = merge_rule_sets(merged, RuleSet.from_file(rule_file))
    finally:
        stack.pop()

    logger.debug(
        "Loaded rules %s (extends=%d, fields=%d)",
        reference,
        len(rule_file.extends),
        len(resolved.fields),
    )
    return resolved


def _read(reference: str, read: Reader) -> Any:
    try:
        return read(reference)
    except RuleLoadError:
        raise
    except (OSError, KeyError, UsageError) as exc:
        msg = f"failed to read rules file `{reference}`: {exc}"
        raise RuleLoadError(msg, detail={"reference": reference}) from exc
