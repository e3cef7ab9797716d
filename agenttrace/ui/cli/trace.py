"""
CLI commands for trace capture and inspection.

Thin wrappers over ``agenttrace.core.services.trace``.  Lifecycle
commands (start, record, end-span, finalize) print a JSON response so
they can be driven by other tools; ``show`` and ``list`` print a
human view unless ``--json`` is given.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from agenttrace.core.errors import TraceError
from agenttrace.core.models.trace import Span, Trace
from agenttrace.core.services.trace.store import TraceStore

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "error": ("✗", "red"),
    "in_progress": ("…", "yellow"),
}


# ── Helpers ─────────────────────────────────────────────────────


def _store(ctx: click.Context) -> TraceStore:
    config = ctx.obj["config"]
    return TraceStore(config.storage_dir, default_format=config.default_format)


def _parse_attrs(values: tuple[str, ...]) -> dict[str, Any]:
    """``key=value`` pairs → dict.  Values are JSON when they parse, else strings."""
    attrs: dict[str, Any] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--attr")
        try:
            attrs[key] = json.loads(raw)
        except json.JSONDecodeError:
            attrs[key] = raw
    return attrs


def _emit(data: dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2))


def _fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def _print_tree(trace: Trace) -> None:
    stack: list[tuple[Span, int]] = [(trace.root_span, 0)]
    while stack:
        span, depth = stack.pop()
        icon, color = _STATUS_STYLE.get(span.status, ("?", "white"))
        indent = "  " * depth
        timing = f" ({span.duration_ms}ms)" if span.duration_ms is not None else ""
        click.secho(f"   {indent}{icon} {span.name}", fg=color, nl=False)
        click.echo(f"  [{span.span_id}]{timing}")
        for key, value in span.attributes.items():
            click.echo(f"   {indent}    {key}: {json.dumps(value)}")
        for event in span.events:
            click.echo(f"   {indent}    • {event.name} @ {event.timestamp}")
        stack.extend((child, depth + 1) for child in reversed(span.children))


_attr_option = click.option(
    "--attr", "attrs", multiple=True, metavar="KEY=VALUE",
    help="Attribute (repeatable). JSON values are parsed.",
)


# ── Lifecycle ───────────────────────────────────────────────────


@click.command("start")
@click.option("--session", "session_id", default="unknown", help="Session ID.")
@click.option("--name", default="session", help="Root span name.")
@_attr_option
@click.option(
    "--format", "fmt", type=click.Choice(["json", "jsonl", "html"]), default=None,
    help="Storage format (default: from config).",
)
@click.pass_context
def start(
    ctx: click.Context,
    session_id: str,
    name: str,
    attrs: tuple[str, ...],
    fmt: str | None,
) -> None:
    """Start a new trace."""
    from agenttrace.core.services.trace import start_trace

    try:
        trace, path = start_trace(
            _store(ctx),
            session_id=session_id,
            name=name,
            attributes=_parse_attrs(attrs),
            fmt=fmt,
        )
    except TraceError as e:
        _fail(str(e))

    _emit({
        "traceId": trace.trace_id,
        "rootSpanId": trace.root_span.span_id,
        "sessionId": trace.session_id,
        "filepath": str(path),
    })


@click.command("record")
@click.argument("trace_id")
@click.option("--name", required=True, help="Span or event name.")
@click.option("--parent", "parent_span_id", default=None, help="Parent span ID (default: root).")
@click.option("--span", "span_id", default=None, help="Record an event on this span instead of a new span.")
@_attr_option
@click.option(
    "--status", type=click.Choice(["ok", "error", "in_progress"]), default="in_progress",
    help="Status of the new span.",
)
@click.pass_context
def record(
    ctx: click.Context,
    trace_id: str,
    name: str,
    parent_span_id: str | None,
    span_id: str | None,
    attrs: tuple[str, ...],
    status: str,
) -> None:
    """Record a span (or an event with --span) in TRACE_ID."""
    from agenttrace.core.services.trace import record_event, record_span

    store = _store(ctx)
    attributes = _parse_attrs(attrs)
    try:
        if span_id:
            event = record_event(store, trace_id, span_id, name=name, attributes=attributes)
            _emit({
                "traceId": trace_id,
                "spanId": span_id,
                "name": event.name,
                "timestamp": event.timestamp,
            })
            return

        span = record_span(
            store,
            trace_id,
            name=name,
            parent_span_id=parent_span_id,
            attributes=attributes,
            status=status,
        )
    except TraceError as e:
        _fail(str(e))

    _emit({
        "traceId": trace_id,
        "spanId": span.span_id,
        "parentSpanId": span.parent_span_id,
        "name": span.name,
        "status": span.status,
        "startTime": span.start_time,
    })


@click.command("end-span")
@click.argument("trace_id")
@click.argument("span_id")
@click.option("--status", type=click.Choice(["ok", "error"]), default="ok", help="Terminal status.")
@click.pass_context
def end_span_cmd(ctx: click.Context, trace_id: str, span_id: str, status: str) -> None:
    """Finish SPAN_ID in TRACE_ID."""
    from agenttrace.core.services.trace import end_span

    try:
        span = end_span(_store(ctx), trace_id, span_id, status=status)
    except TraceError as e:
        _fail(str(e))

    _emit({"traceId": trace_id, "spanId": span.span_id, "status": span.status,
           "endTime": span.end_time})


@click.command("finalize")
@click.argument("trace_id")
@click.option("--status", type=click.Choice(["ok", "error"]), default="ok", help="Root span status.")
@click.pass_context
def finalize(ctx: click.Context, trace_id: str, status: str) -> None:
    """Finalize TRACE_ID (sets its end time)."""
    from agenttrace.core.services.trace import finalize_trace, generate_summary

    try:
        trace = finalize_trace(_store(ctx), trace_id, status=status)
    except TraceError as e:
        _fail(str(e))

    _emit({
        "traceId": trace.trace_id,
        "endTime": trace.end_time,
        "status": trace.root_span.status,
        "summary": generate_summary(trace),
    })


# ── Inspection ──────────────────────────────────────────────────


@click.command("show")
@click.argument("trace_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, trace_id: str, as_json: bool) -> None:
    """Show TRACE_ID as a span tree."""
    from agenttrace.core.services.trace import generate_summary, query_trace

    try:
        trace = query_trace(_store(ctx), trace_id)
    except TraceError as e:
        _fail(str(e))

    if as_json:
        click.echo(trace.to_json())
        return

    click.secho(f"\n🔍 {trace.trace_id}", fg="cyan", bold=True)
    click.echo(f"   Session: {trace.session_id}")
    click.echo(f"   Started: {trace.start_time}")
    if trace.end_time:
        click.echo(f"   Ended:   {trace.end_time}")
    click.echo(f"   {generate_summary(trace)}")
    click.echo()
    _print_tree(trace)
    click.echo()


@click.command("list")
@click.option("-n", "limit", default=10, type=int, help="Max traces to list.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, limit: int, as_json: bool) -> None:
    """List stored traces, newest first."""
    from agenttrace.core.services.trace import list_traces

    store = _store(ctx)
    traces = list_traces(store, limit=limit)

    if as_json:
        _emit({
            "count": len(traces),
            "storageDir": str(store.root),
            "traces": [t.to_dict() for t in traces],
        })
        return

    if not traces:
        click.echo(f"No traces in {store.root}")
        return

    click.secho(f"\n📋 {len(traces)} trace(s) in {store.root}", fg="cyan", bold=True)
    for t in traces:
        click.echo(f"   • {t.trace_id}  {t.start_time}  session={t.session_id}  [{t.format}]")
    click.echo()


@click.command("export")
@click.argument("trace_id")
@click.option(
    "--format", "fmt", type=click.Choice(["json", "jsonl", "html"]), default="jsonl",
    help="Output format.",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write to file instead of stdout.")
@click.pass_context
def export(ctx: click.Context, trace_id: str, fmt: str, output: Path | None) -> None:
    """Export TRACE_ID as json, jsonl or an HTML report."""
    from agenttrace.core.services.trace import dumps_jsonl, query_trace, render_report

    try:
        trace = query_trace(_store(ctx), trace_id)
    except TraceError as e:
        _fail(str(e))

    if fmt == "json":
        content = trace.to_json() + "\n"
    elif fmt == "html":
        content = render_report(trace)
    else:
        content = dumps_jsonl(trace)

    if output is None:
        click.echo(content, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    click.secho(f"💾 Exported {trace_id} → {output}", fg="cyan", err=True)


@click.command("delete")
@click.argument("trace_id")
@click.pass_context
def delete(ctx: click.Context, trace_id: str) -> None:
    """Delete every stored file of TRACE_ID."""
    if not _store(ctx).delete(trace_id):
        _fail(f"Trace not found: {trace_id}")
    click.echo(f"Deleted {trace_id}")


@click.command("prune")
@click.option("--days", type=int, default=None, help="Retention in days (default: config).")
@click.pass_context
def prune(ctx: click.Context, days: int | None) -> None:
    """Delete traces older than the retention window."""
    if days is None:
        days = ctx.obj["config"].retention_days
    if days is None:
        _fail("No retention configured. Pass --days or set retention_days.")
    if days < 0:
        _fail("--days must be >= 0")

    removed = _store(ctx).prune(days)
    click.echo(f"Pruned {removed} trace(s) older than {days} day(s)")


COMMANDS = [start, record, end_span_cmd, finalize, show, list_cmd, export, delete, prune]
