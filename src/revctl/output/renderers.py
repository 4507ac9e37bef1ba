"""Operation-specific Rich renderers for ServiceResult.

Renderers are picked by ``result.op`` in :func:`render_result`; unknown
ops fall back to a generic key-value listing.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from revctl.output.console import create_console, get_output, style_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from revctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: one id per line, suitable for xargs."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"

    if result.op in ("status", "mr_status"):
        return "\n".join(p["path"] for p in result.data.get("paths", []) if not p["satisfied"])

    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(ident for item in items if (ident := _extract_id(item)))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("commit", "path", "iid"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _short(oid: Any, length: int = 10) -> str:
    return str(oid)[:length] if oid else "-"


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="rev.ok"), Text(f"  {result.op}", style="rev.op"), sep="")


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="rev.key")
    if key in ("base", "head", "commit", "tip") or key.endswith("_id"):
        v = Text(str(value), style="rev.oid")
    elif key == "path":
        v = Text(str(value), style="rev.path")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Meta block including the telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {name}")
    annotations = span_data.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})")
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _table(*columns: str) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for column in columns:
        table.add_column(column)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="rev.error"), Text(f"  {result.op}{code}", style="rev.op"), Text(f" - {msg}"), sep=""
    )

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Requirement reports ───────────────────────────────────────────────


def _render_status(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    if "iid" in d:
        _field(console, "merge_request", f"!{d['iid']} v{d['version']}  {d.get('title', '')}")
    _field(console, "range", f"{_short(d.get('base'))}..{_short(d.get('head'))}")

    paths = d.get("paths", [])
    if not paths:
        console.print(Text("  no changed paths", style="dim"))
        return

    shown = paths if verbose else [p for p in paths if not p["satisfied"]]
    if shown:
        table = _table("Path", "Pattern", "Scrutiny", "Have", "Candidates")
        for path in shown:
            for rule in path["rules"]:
                if rule["satisfied"] and not verbose:
                    continue
                style = "rev.met" if rule["satisfied"] else "rev.unmet"
                table.add_row(
                    Text(path["path"], style="rev.path"),
                    Text(rule["pattern"], style="rev.pattern"),
                    "!" * rule["scrutiny"],
                    Text(f"{rule['have']}/{rule['required']}", style=style),
                    ", ".join(rule["candidates"]) if not rule["satisfied"] else ", ".join(rule["approvers"]),
                )
        console.print(table)

    unsatisfied = d.get("unsatisfied_count", 0)
    if unsatisfied:
        console.print(Text(f"\n{unsatisfied} of {len(paths)} path(s) need approval", style="rev.unmet"))
    else:
        console.print(Text(f"all {len(paths)} path(s) satisfied", style="rev.met"))
    if verbose:
        _render_meta(console, result)


# ── Mutations ─────────────────────────────────────────────────────────


def _render_approve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "reviewer", result.data.get("reviewer"))
    for item in result.data.get("items", []):
        line = Text("  ")
        line.append("!" * item["scrutiny"], style="rev.pattern")
        line.append(" ")
        line.append(item["path"], style="rev.path")
        if verbose:
            line.append(f"  {_short(item['content_id'])}", style="rev.oid")
        console.print(line)
    if verbose:
        _render_meta(console, result)


def _render_mark(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for item in result.data.get("items", []):
        line = Text("  ")
        line.append(_short(item["commit"]), style="rev.oid")
        line.append(f"  {item['status']} by {item['reviewer']}")
        if item.get("checkpoint"):
            line.append("  (checkpoint)", style="rev.warning")
        console.print(line)
    if verbose:
        _render_meta(console, result)


def _render_sync(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "remote", result.data.get("remote"))
    for name, stats in result.data.get("namespaces", {}).items():
        pushed = ", pushed" if stats.get("pushed") else ""
        console.print(f"  {name}: {stats.get('action')}{pushed}")
        if verbose:
            console.print(Text(f"    {_short(stats.get('local_before'))} -> {_short(stats.get('tip'))}", style="dim"))
    if verbose:
        _render_meta(console, result)


# ── Listings ──────────────────────────────────────────────────────────


def _render_unreviewed(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    if items:
        table = _table("Commit", "Kind", "Author", "Summary")
        for item in items:
            table.add_row(
                Text(_short(item["commit"]), style="rev.oid"),
                Text(item["kind"], style=style_for_kind(item["kind"])),
                item["author"],
                item["summary"],
            )
        console.print(table)
    skipped = result.data.get("skipped", 0)
    tail = f" ({skipped} skipped)" if skipped else ""
    console.print(f"\n{result.data.get('count', len(items))} unreviewed commit(s){tail}")


def _render_rules(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    rules = result.data.get("rules", [])
    table = _table("Pattern", "Scrutiny", "Required", "Reviewers")
    for rule in rules:
        required = str(rule["required"])
        if not rule.get("satisfiable", True):
            required = f"{required} (unsatisfiable)"
        table.add_row(
            Text(rule["pattern"], style="rev.pattern"),
            "!" * rule["scrutiny"],
            required,
            ",".join(rule["reviewers"]),
        )
    console.print(table)
    console.print(f"\n{len(rules)} rule(s)")


def _render_match(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    for item in result.data.get("items", []):
        console.print(Text(item["path"], style="rev.path"))
        if not item["rules"]:
            console.print(Text("  no matching rules", style="dim"))
        for rule in item["rules"]:
            line = Text("  ")
            line.append(rule["pattern"], style="rev.pattern")
            line.append(f"  {'!' * rule['scrutiny']} {rule['required']}  {','.join(rule['reviewers'])}")
            console.print(line)


def _render_mr_fetch(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for item in result.data.get("items", []):
        new = item.get("new_versions") or []
        tail = f"  new: {', '.join(f'v{n}' for n in new)}" if new else ""
        console.print(f"  !{item['iid']}  {item['title']}  ({item['versions']} version(s)){tail}")
    dropped = result.data.get("dropped") or []
    if dropped:
        _field(console, "dropped", ", ".join(f"!{iid}" for iid in dropped))


def _render_mr_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = _table("MR", "Title", "Author", "Versions", "Unreviewed")
    for item in items:
        versions = item.get("versions", [])
        latest = versions[-1] if versions else None
        unreviewed = "-" if latest is None or latest["unreviewed"] is None else str(latest["unreviewed"])
        title = item["title"] + (" [draft]" if item.get("draft") else "")
        table.add_row(f"!{item['iid']}", title, item["author"], str(len(versions)), unreviewed)
    console.print(table)
    hidden = result.data.get("hidden", 0)
    tail = f" ({hidden} hidden, use --all)" if hidden else ""
    console.print(f"\n{len(items)} merge request(s){tail}")


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "status": _render_status,
    "mr_status": _render_status,
    "approve": _render_approve,
    "mark": _render_mark,
    "sync": _render_sync,
    "unreviewed": _render_unreviewed,
    "load_rules": _render_rules,
    "match_rules": _render_match,
    "mr_fetch": _render_mr_fetch,
    "mr_list": _render_mr_list,
}
