"""
Trace recorder — the lifecycle actions: start, record, finalize, query, list.

Every mutating action is load → mutate → save against a TraceStore,
so spans and events recorded after ``start`` are persisted.  Saves
rewrite the whole trace file; a process-wide lock serializes the
read-modify-write cycle (web server threads, CLI in the same process).
Writers in *other* processes get last-writer-wins.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from agenttrace import __version__
from agenttrace.core.models.trace import Event, Span, Trace
from agenttrace.core.services.trace.store import TraceStore, TraceSummary

logger = logging.getLogger(__name__)

_lock = threading.RLock()


def start_trace(
    store: TraceStore,
    *,
    session_id: str = "unknown",
    name: str = "session",
    attributes: dict[str, Any] | None = None,
    fmt: str | None = None,
) -> tuple[Trace, Path]:
    """Create and persist a new trace.  Returns the trace and its file."""
    trace = Trace.start(
        session_id,
        name=name,
        attributes=attributes,
        metadata={"plugin": "agenttrace", "version": __version__},
    )
    with _lock:
        path = store.save(trace, fmt or store.default_format)

    logger.info("Trace started: %s (session=%s)", trace.trace_id, trace.session_id)
    return trace, path


def record_span(
    store: TraceStore,
    trace_id: str,
    *,
    name: str,
    parent_span_id: str | None = None,
    attributes: dict[str, Any] | None = None,
    status: str = "in_progress",
) -> Span:
    """Add a span under ``parent_span_id`` (default: the root span)."""
    with _lock:
        trace = store.load(trace_id)
        span = trace.add_span(
            name,
            parent_span_id=parent_span_id,
            attributes=attributes,
            status=status,
        )
        store.save(trace)

    logger.info("Span recorded: %s/%s (%s)", trace_id, span.span_id, name)
    return span


def record_event(
    store: TraceStore,
    trace_id: str,
    span_id: str,
    *,
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Event:
    """Attach an event to an existing span."""
    with _lock:
        trace = store.load(trace_id)
        event = trace.add_event(span_id, name, attributes)
        store.save(trace)

    logger.info("Event recorded: %s/%s (%s)", trace_id, span_id, name)
    return event


def end_span(
    store: TraceStore,
    trace_id: str,
    span_id: str,
    *,
    status: str = "ok",
) -> Span:
    """Move a span to a terminal status (``ok`` or ``error``)."""
    with _lock:
        trace = store.load(trace_id)
        span = trace.end_span(span_id, status)
        store.save(trace)

    logger.info("Span ended: %s/%s [%s]", trace_id, span_id, status)
    return span


def finalize_trace(store: TraceStore, trace_id: str, *, status: str = "ok") -> Trace:
    """Set the trace end time and close the root span if still open."""
    with _lock:
        trace = store.load(trace_id)
        trace.finalize(status)
        store.save(trace)

    logger.info(
        "Trace finalized: %s (%d spans, %d events)",
        trace_id, trace.span_count(), trace.event_count(),
    )
    return trace


def query_trace(store: TraceStore, trace_id: str) -> Trace:
    """Load a trace by ID."""
    return store.load(trace_id)


def list_traces(store: TraceStore, limit: int = 10) -> list[TraceSummary]:
    """List stored traces, newest first."""
    return store.list_traces(limit)
