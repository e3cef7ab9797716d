"""
Domain models — Pydantic types for traces and their flat records.

All models are re-exported here for convenient access:

    from agenttrace.core.models import Trace, Span, Event, SpanRecord
"""

from agenttrace.core.models.records import (
    AnyRecord,
    EventRecord,
    FlatRecord,
    SpanRecord,
    TraceRecord,
    parse_record,
    record_to_dict,
    record_to_line,
)
from agenttrace.core.models.trace import (
    TERMINAL_STATUSES,
    Event,
    Span,
    SpanStatus,
    Trace,
    duration_ms,
    is_span_id,
    is_trace_id,
    new_span_id,
    new_trace_id,
    now_iso,
    parse_iso,
)

__all__ = [
    # trace.py
    "Event",
    "Span",
    "SpanStatus",
    "TERMINAL_STATUSES",
    "Trace",
    "duration_ms",
    "is_span_id",
    "is_trace_id",
    "new_span_id",
    "new_trace_id",
    "now_iso",
    "parse_iso",
    # records.py
    "AnyRecord",
    "EventRecord",
    "FlatRecord",
    "SpanRecord",
    "TraceRecord",
    "parse_record",
    "record_to_dict",
    "record_to_line",
]
