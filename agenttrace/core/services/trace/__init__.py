"""
AgentTrace core — flatten / rebuild codec, trace store, lifecycle actions.

Public API:
    from agenttrace.core.services.trace import flatten, rebuild, parse_lines
    from agenttrace.core.services.trace import TraceStore
    from agenttrace.core.services.trace import start_trace, record_span, finalize_trace
"""

from agenttrace.core.services.trace.flatten import dumps_jsonl, flatten, flatten_to_lines
from agenttrace.core.services.trace.rebuild import (
    RebuiltTrace,
    load_jsonl,
    parse_lines,
    rebuild,
)
from agenttrace.core.services.trace.report import generate_summary, render_report
from agenttrace.core.services.trace.store import TraceStore, TraceSummary
from agenttrace.core.services.trace.trace_recorder import (
    end_span,
    finalize_trace,
    list_traces,
    query_trace,
    record_event,
    record_span,
    start_trace,
)

__all__ = [
    "RebuiltTrace",
    "TraceStore",
    "TraceSummary",
    "dumps_jsonl",
    "end_span",
    "finalize_trace",
    "flatten",
    "flatten_to_lines",
    "generate_summary",
    "list_traces",
    "load_jsonl",
    "parse_lines",
    "query_trace",
    "rebuild",
    "record_event",
    "record_span",
    "render_report",
    "start_trace",
]
