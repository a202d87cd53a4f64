"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from treeq.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from treeq.services.result import ServiceResult

Renderer = Callable[..., None]


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode.

    Documents (canon, merge) are printed as-is; diff and assert print one
    path per finding; anything else prints ``OK: <op>``.
    """
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    data = result.data
    if "document" in data:
        return str(data["document"]).rstrip("\n")
    if data.get("mismatches"):
        return "\n".join(
            f"{m['path']}\t{m['rule_kind']}\t{m['reason']}" for m in data["mismatches"]
        )
    if result.op == "diff" and not data.get("matched", True):
        lines = [f"-{path}" for path in data["keys"]["left_only"]]
        lines += [f"+{path}" for path in data["keys"]["right_only"]]
        lines += [f"~{item['path']}" for item in data["values"]["items"]]
        if not lines:
            counts = data["counts"]
            lines.append(f"COUNT: {counts['left']} != {counts['right']}")
        return "\n".join(lines)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _compact(value: Any) -> str:
    """One-line JSON for a value cell."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _status_line(
    console: Console, result: ServiceResult, *, label: str = "OK", style: str = "treeq.ok"
) -> None:
    """Print the status line (``OK``, ``FAIL``, ``DIFF``)."""
    console.print(Text(label, style=style), Text(f"  {result.op}", style="treeq.op"), sep="")


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="treeq.key")
    if key == "path" or key.endswith("_path"):
        v = Text(str(value), style="treeq.path")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_document(console: Console, document: str) -> None:
    """Print a rendered document verbatim (no markup, no wrapping)."""
    console.print()
    console.out(document.rstrip("\n"), highlight=False)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including the stage report (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "stages":
            _render_stages(console, v)
        else:
            console.print(Text(f"    {k}: {v}"))


def _timing(elapsed_ms: float) -> Text:
    if elapsed_ms > 1000:
        style = "bold red"
    elif elapsed_ms > 100:
        style = "yellow"
    else:
        style = "dim"
    return Text(f"{elapsed_ms:>8.2f}ms", style=style)


def _render_stages(console: Console, report: dict[str, Any]) -> None:
    """Render a run's stages with color-coded timing and their counts."""
    line = Text("    ")
    line.append_text(_timing(report.get("elapsed_ms", 0.0)))
    line.append(f"  {report.get('op', '?')}", style="treeq.op")
    console.print(line)

    for entry in report.get("stages", []):
        line = Text("        ")
        line.append_text(_timing(entry.get("elapsed_ms", 0.0)))
        line.append(f"  {entry.get('name', '?')}")
        counts = entry.get("counts") or {}
        if counts:
            line.append(f"  ({', '.join(f'{k}={v}' for k, v in counts.items())})")
        console.print(line)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="treeq.error"),
        Text(f"  {result.op}", style="treeq.op"),
        Text(": "),
        Text(msg),
        sep="",
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Operation renderers ───────────────────────────────────────────────


def _render_canon(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "input", d["input"])
    _field(console, "format", f"{d['format']} -> {d['output_format']}")
    _field(console, "records", d["record_count"])
    if verbose:
        _field(console, "sort_keys", d["sort_keys"])
        _field(console, "normalize_time", d.get("normalize_time", False))
        _render_meta(console, result)
    _render_document(console, d["document"])


def _render_merge(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "base", d["base"])
    _field(console, "overlays", ", ".join(d["overlays"]) or "(none)")
    _field(console, "policy", d["policy"])
    for override in d["overrides"]:
        _field(console, "override", f"{override['path']} = {override['policy']}")
    if verbose:
        _render_meta(console, result)
    _render_document(console, d["document"])


def _render_diff(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if d["matched"]:
        _status_line(console, result)
    else:
        _status_line(console, result, label="DIFF", style="treeq.fail")

    counts = d["counts"]
    _field(console, "left", d["left"])
    _field(console, "right", d["right"])
    if d.get("key"):
        _field(console, "key_path", d["key"])
    _field(
        console,
        "records",
        f"{counts['left']} vs {counts['right']} (delta {counts['delta']:+d})",
    )
    if d["keys"]["left_only"]:
        _field(console, "left_only", ", ".join(d["keys"]["left_only"]))
    if d["keys"]["right_only"]:
        _field(console, "right_only", ", ".join(d["keys"]["right_only"]))
    if d["ignored_paths"]:
        _field(console, "ignored", ", ".join(d["ignored_paths"]))

    values = d["values"]
    summary = f"{values['total']}"
    if values["truncated"]:
        summary += f" (showing {len(values['items'])})"
    _field(console, "value_diffs", summary)

    key_paths = d.get("key_paths")
    if key_paths:
        _field(
            console,
            "key_paths",
            f"{len(key_paths['shared'])} shared, {len(key_paths['left_only'])} left only, "
            f"{len(key_paths['right_only'])} right only",
        )
        if verbose:
            for side in ("left_only", "right_only"):
                if key_paths[side]:
                    _field(console, f"{side}_paths", ", ".join(key_paths[side]))

    if values["items"]:
        console.print()
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Path", style="treeq.path", no_wrap=True)
        table.add_column("Left", style="treeq.left")
        table.add_column("Right", style="treeq.right")
        for item in values["items"]:
            table.add_row(
                Text(item["path"]),
                Text(_compact(item["actual"])),
                Text(_compact(item["expected"])),
            )
        console.print(table)

    if verbose:
        _render_meta(console, result)


def _render_assert(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if d["matched"]:
        _status_line(console, result, label="PASS")
    else:
        _status_line(console, result, label="FAIL", style="treeq.fail")
    _field(console, "input", d["input"])
    if d.get("schema"):
        _field(console, "schema", d["schema"])
    else:
        _field(console, "rules", d["rules"])
    _field(console, "records", d["record_count"])
    _field(console, "mismatches", d["mismatch_count"])

    if d["mismatches"]:
        console.print()
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Path", style="treeq.path", no_wrap=True)
        table.add_column("Rule", style="treeq.rule")
        table.add_column("Reason")
        table.add_column("Actual")
        table.add_column("Expected")
        for m in d["mismatches"]:
            table.add_row(
                Text(m["path"]),
                Text(m["rule_kind"]),
                Text(m["reason"]),
                Text(_compact(m["actual"])),
                Text(_compact(m["expected"])),
            )
        console.print(table)

    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback: status line plus one field per data key."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, _compact(value) if isinstance(value, (dict, list)) else value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS: dict[str, Renderer] = {
    "canon": _render_canon,
    "diff": _render_diff,
    "assert": _render_assert,
    "merge": _render_merge,
}
