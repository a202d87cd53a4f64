"""JSON Schema mode — validate records against a JSON Schema document.

An alternative to rule files for ``treeq assert``. The schema's ``$schema``
keyword picks the draft; without one, Draft 2020-12 applies. Every
validation error becomes a :class:`~treeq.domain.validate.Mismatch` with
``rule_kind="schema"`` and ``reason="schema_mismatch"``:

* ``path`` is the failing instance location, prefixed by the record
  index, written the way rule paths are reported: ``$[0].score``, with
  bracketed segments where a key is not a plain identifier
  (``$[0]["first name"]``).
* ``actual`` is the value found there, or ``None`` when it is absent.
* ``expected`` is ``{"schema_path": <JSON Pointer into the schema>,
  "message": <validator message>}``.

Mismatches are sorted by path, then schema path, then message, so output
does not depend on the order the validator walks keywords in.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any

from jsonschema import Draft202012Validator, validators
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator

from treeq.domain.canon import canonicalize
from treeq.domain.errors import RuleLoadError
from treeq.domain.paths import MISSING, ValuePath, ensure_round_trip
from treeq.domain.validate import Mismatch
from treeq.domain.values import DEFAULT_MAX_DEPTH, check_value

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def compile_schema(schema: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Validator:
    """Check *schema* against its draft's metaschema and build a validator.

    Raises:
        RuleLoadError: If *schema* is not an object or boolean, or is not a
            valid schema for its draft.
    """
    if not isinstance(schema, dict | bool):
        msg = f"invalid schema: expected an object or a boolean, got {type(schema).__name__}"
        raise RuleLoadError(msg)

    schema = canonicalize(schema, sort_keys=False, max_depth=max_depth)
    cls = validators.validator_for(schema, default=Draft202012Validator)
    try:
        cls.check_schema(schema)
    except SchemaError as exc:
        pointer = _pointer(exc.absolute_schema_path)
        msg = f"invalid schema: {exc.message}"
        raise RuleLoadError(msg, detail={"schema_path": pointer}) from exc

    logger.debug("Compiled schema with %s", cls.__name__)
    return cls(schema)


def validate_schema(
    validator: Validator, records: Iterable[Any], *, max_depth: int = DEFAULT_MAX_DEPTH
) -> list[Mismatch]:
    """Validate each record against *validator*. An empty list means pass."""
    records = list(records)
    for record in records:
        check_value(record, max_depth=max_depth)

    keyed: list[tuple[Any, str, str, Mismatch]] = []
    for index, record in enumerate(records):
        for error in validator.iter_errors(record):
            inner = ValuePath.of(*error.absolute_path)
            path = ensure_round_trip(ValuePath.of(index, *inner))
            actual = inner.lookup(record)
            schema_path = _pointer(error.absolute_schema_path)
            mismatch = Mismatch(
                _record_path(path),
                "schema",
                "schema_mismatch",
                None if actual is MISSING else canonicalize(actual),
                {"schema_path": schema_path, "message": error.message},
            )
            keyed.append((path.sort_key(), schema_path, error.message, mismatch))

    keyed.sort(key=lambda item: item[:3])
    return [item[3] for item in keyed]


def _record_path(path: ValuePath) -> str:
    """Render ``$[0].meta["first name"]``: dotted where a key allows it."""
    text = "$"
    for segment in path:
        if isinstance(segment, int):
            text += f"[{segment}]"
        elif _IDENTIFIER.fullmatch(segment):
            text += f".{segment}"
        else:
            text += f"[{json.dumps(segment, ensure_ascii=False)}]"
    return text


def _pointer(segments: Iterable[str | int]) -> str:
    """Render path segments as a JSON Pointer (``/properties/score``)."""
    return "".join(
        "/" + str(segment).replace("~", "~0").replace("/", "~1") for segment in segments
    )
