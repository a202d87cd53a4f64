"""Format IO — turn JSON/YAML/JSONL/CSV text into value trees and back.

Everything that depends on a concrete syntax lives here, outside the
engines: format detection, scalar coercion of CSV cells, YAML-specific
types, and deterministic output rendering.
"""

from __future__ import annotations

import csv
import datetime as _dt
import json
import re
import sys
from enum import StrEnum
from io import StringIO
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from treeq.domain.errors import UsageError

STDIN = "-"

_INT_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)")
_FLOAT_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.\d+)?"
    r"(?:[Zz]|([+-])(\d{2}):(\d{2}))"
)


class FormatError(UsageError):
    """Input could not be read, or output could not be written, in a format."""

    code = "INPUT_ERROR"


class Format(StrEnum):
    JSON = "json"
    YAML = "yaml"
    JSONL = "jsonl"
    CSV = "csv"


_EXTENSIONS: dict[str, Format] = {
    ".json": Format.JSON,
    ".yaml": Format.YAML,
    ".yml": Format.YAML,
    ".jsonl": Format.JSONL,
    ".ndjson": Format.JSONL,
    ".csv": Format.CSV,
}


def resolve_format(explicit: str | None, path: Path | None) -> Format:
    """Pick a format from an explicit name or the file extension."""
    if explicit:
        try:
            return Format(explicit.lower())
        except ValueError as exc:
            msg = f"unsupported format {explicit!r}"
            raise FormatError(msg) from exc
    if path is None or str(path) == STDIN:
        msg = "cannot infer format for stdin; pass --format"
        raise FormatError(msg)
    fmt = _EXTENSIONS.get(path.suffix.lower())
    if fmt is None:
        msg = f"cannot infer format from extension of `{path}`"
        raise FormatError(msg, detail={"path": str(path)})
    return fmt


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def coerce_scalar(text: str) -> Any:
    """Type a raw text cell: ``true``/``false`` and JSON number literals.

    Anything else, including numbers with leading zeros, stays a string.
    """
    if text == "true":
        return True
    if text == "false":
        return False
    if _INT_LITERAL.fullmatch(text):
        return int(text)
    if _FLOAT_LITERAL.fullmatch(text):
        number = float(text)
        if number == number and number not in (float("inf"), float("-inf")):
            return number
    return text


def normalize_timestamp(text: str) -> str | None:
    """Rewrite an RFC 3339 timestamp in UTC, to the second: ``2026-02-23T11:15:30Z``.

    Fractional seconds are dropped. Returns None when *text* is not a valid
    RFC 3339 date-time.
    """
    match = _RFC3339.fullmatch(text)
    if match is None:
        return None
    year, month, day, hour, minute, second = (int(part) for part in match.group(1, 2, 3, 4, 5, 6))
    offset = _dt.timedelta()
    if match.group(7):
        offset = _dt.timedelta(hours=int(match.group(8)), minutes=int(match.group(9)))
        if match.group(7) == "-":
            offset = -offset
    try:
        moment = _dt.datetime(
            year, month, day, hour, minute, second, tzinfo=_dt.timezone(offset)
        ).astimezone(_dt.UTC)
    except (ValueError, OverflowError):
        return None
    return moment.replace(tzinfo=None).isoformat() + "Z"


def normalize_timestamps(value: Any) -> Any:
    """Copy *value*, rewriting every RFC 3339 string with :func:`normalize_timestamp`."""
    match value:
        case str():
            normalized = normalize_timestamp(value)
            return value if normalized is None else normalized
        case dict():
            return {key: normalize_timestamps(child) for key, child in value.items()}
        case list():
            return [normalize_timestamps(item) for item in value]
        case _:
            return value


def _reject_constant(name: str) -> Any:
    msg = f"non-standard JSON constant {name}"
    raise FormatError(msg)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        msg = f"invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}"
        raise FormatError(msg) from exc


def _plain(node: Any) -> Any:
    """Convert YAML-loaded nodes to the plain value model."""
    if isinstance(node, dict):
        return {str(key): _plain(child) for key, child in node.items()}
    if isinstance(node, list):
        return [_plain(child) for child in node]
    if isinstance(node, (_dt.datetime, _dt.date)):
        return node.isoformat()
    return node


def _load_yaml_documents(text: str) -> list[Any]:
    try:
        documents = list(YAML(typ="safe").load_all(text))
    except YAMLError as exc:
        msg = f"invalid YAML: {exc}"
        raise FormatError(msg) from exc
    return [_plain(doc) for doc in documents]


def _load_csv(text: str, *, coerce: bool) -> list[dict[str, Any]]:
    """One object per data row, keyed by the header row.

    Every row must have exactly as many cells as the header.
    """
    reader = csv.DictReader(StringIO(text))
    records: list[dict[str, Any]] = []
    try:
        rows = list(reader)
    except csv.Error as exc:
        msg = f"invalid CSV at line {reader.line_num}: {exc}"
        raise FormatError(msg) from exc
    for number, row in enumerate(rows, start=1):
        if None in row or None in row.values():
            width = len(reader.fieldnames or ())
            msg = f"CSV row {number}: expected {width} cells to match the header"
            raise FormatError(msg, detail={"row": number, "columns": width})
        if coerce:
            records.append({key: coerce_scalar(cell) for key, cell in row.items()})
        else:
            records.append(dict(row))
    return records


def load_text(text: str, fmt: Format, *, coerce_csv: bool = True) -> Any:
    """Parse *text* into its top-level value.

    JSON and single-document YAML yield the document itself. JSONL, CSV,
    and multi-document YAML yield a list with one entry per line, row, or
    document.
    """
    match fmt:
        case Format.JSON:
            return _load_json(text)
        case Format.YAML:
            documents = _load_yaml_documents(text)
            return documents[0] if len(documents) == 1 else documents
        case Format.JSONL:
            return [_load_json(line) for line in text.splitlines() if line.strip()]
        case Format.CSV:
            return _load_csv(text, coerce=coerce_csv)


def read_values(text: str, fmt: Format, *, coerce_csv: bool = True) -> list[Any]:
    """Parse *text* into a record list.

    A top-level array is the record list; any other top-level value is a
    single record.
    """
    value = load_text(text, fmt, coerce_csv=coerce_csv)
    return value if isinstance(value, list) else [value]


def read_text(path: Path) -> str:
    if str(path) == STDIN:
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        msg = f"failed to read `{path}`: {exc}"
        raise FormatError(msg, detail={"path": str(path)}) from exc


def read_path(path: Path, fmt: str | None = None, *, coerce_csv: bool = True) -> list[Any]:
    """Read a record list from a file (or stdin for ``-``)."""
    resolved = resolve_format(fmt, path)
    return read_values(read_text(path), resolved, coerce_csv=coerce_csv)


def read_document(path: Path, fmt: str | None = None) -> Any:
    """Read exactly one value (a rule file, a merge input)."""
    resolved = resolve_format(fmt, path)
    text = read_text(path)
    match resolved:
        case Format.JSON:
            return _load_json(text)
        case Format.YAML:
            documents = _load_yaml_documents(text)
        case _:
            documents = load_text(text, resolved)
    if len(documents) != 1:
        msg = f"`{path}` must contain exactly one document, found {len(documents)}"
        raise FormatError(msg, detail={"path": str(path)})
    return documents[0]


# ---------------------------------------------------------------------------
# Rule-file references on the filesystem
# ---------------------------------------------------------------------------


def resolve_rule_file(parent: str, entry: str) -> str:
    """Filesystem resolver for ``extends`` entries, passed to ``load_rules``.

    Unlike the lexical default in :mod:`treeq.domain.rules`, this one goes to
    disk: the result is absolute with symlinks followed, so two spellings of
    one file are one reference and cycle detection sees through links.
    """
    candidate = Path(entry)
    if not candidate.is_absolute():
        candidate = Path(parent).parent / candidate
    return str(candidate.resolve())


def read_rule_file(reference: str) -> Any:
    """Read one rule document from the filesystem."""
    return read_document(Path(reference))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def _dump_yaml(data: Any) -> str:
    yaml = YAML()
    yaml.default_flow_style = False
    stream = StringIO()
    yaml.dump(data, stream)
    return stream.getvalue()


def write_document(value: Any, fmt: Format) -> str:
    """Render one value. Keys are emitted in the order the value holds them."""
    match fmt:
        case Format.JSON:
            return json.dumps(value, indent=2, ensure_ascii=False) + "\n"
        case Format.YAML:
            return _dump_yaml(value)
        case _:
            return write_values([value], fmt)


def write_values(values: list[Any], fmt: Format) -> str:
    """Render a record list in *fmt*."""
    match fmt:
        case Format.JSON:
            return json.dumps(values, indent=2, ensure_ascii=False) + "\n"
        case Format.YAML:
            return _dump_yaml(values)
        case Format.JSONL:
            return "".join(
                json.dumps(v, separators=(",", ":"), ensure_ascii=False) + "\n" for v in values
            )
        case Format.CSV:
            return _write_csv(values)


def _write_csv(values: list[Any]) -> str:
    columns: dict[str, None] = {}
    for record in values:
        if not isinstance(record, dict):
            msg = "CSV output requires every record to be an object"
            raise FormatError(msg)
        columns.update(dict.fromkeys(record))

    stream = StringIO()
    writer = csv.DictWriter(stream, fieldnames=list(columns), lineterminator="\n")
    writer.writeheader()
    for record in values:
        writer.writerow({key: _csv_cell(record.get(key, "")) for key in columns})
    return stream.getvalue()


def _csv_cell(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)
