"""
Flattening encoder — Trace tree → ordered flat records.

Emission order is part of the log contract (streaming readers rely on
it even though the rebuilder does not):

    1. the single ``trace`` record
    2. pre-order over the span tree; for each span its ``span`` record,
       then its ``event`` records in original order, then its children
       in insertion order.

``parentSpanId`` comes from the traversal, so the root never carries
one.  Pure functions, no I/O.
"""

from __future__ import annotations

from agenttrace.core.models.records import (
    AnyRecord,
    EventRecord,
    SpanRecord,
    TraceRecord,
    record_to_line,
)
from agenttrace.core.models.trace import Span, Trace


def flatten(trace: Trace) -> list[AnyRecord]:
    """Flatten a trace into its record sequence (see module docstring)."""
    records: list[AnyRecord] = [
        TraceRecord(
            trace_id=trace.trace_id,
            session_id=trace.session_id,
            start_time=trace.start_time,
            end_time=trace.end_time,
            metadata=dict(trace.metadata),
        )
    ]

    # Explicit stack instead of recursion: deep trees must not hit the
    # interpreter recursion limit.
    stack: list[tuple[Span, str | None]] = [(trace.root_span, None)]
    while stack:
        span, parent_id = stack.pop()
        records.append(
            SpanRecord(
                trace_id=trace.trace_id,
                span_id=span.span_id,
                parent_span_id=parent_id,
                name=span.name,
                start_time=span.start_time,
                end_time=span.end_time,
                status=span.status,
                attributes=dict(span.attributes),
            )
        )
        for event in span.events:
            records.append(
                EventRecord(
                    trace_id=trace.trace_id,
                    span_id=span.span_id,
                    timestamp=event.timestamp,
                    name=event.name,
                    attributes=dict(event.attributes),
                )
            )
        for child in reversed(span.children):
            stack.append((child, span.span_id))

    return records


def flatten_to_lines(trace: Trace) -> list[str]:
    """Flatten and encode each record as one compact JSON line."""
    return [record_to_line(r) for r in flatten(trace)]


def dumps_jsonl(trace: Trace) -> str:
    """The full JSONL document for a trace, newline-terminated."""
    return "".join(line + "\n" for line in flatten_to_lines(trace))
