"""
Trace errors — the exception taxonomy shared by models, codec and store.

Referential gaps in a flat log (unknown parent span, orphan event) are
NOT errors; the rebuilder degrades around them.  Everything here is
raised to the caller and never swallowed inside the core.
"""

from __future__ import annotations


class TraceError(Exception):
    """Base class for all trace errors."""


class TraceParseError(TraceError):
    """A persisted line is not valid JSON or not a valid flat record."""

    def __init__(self, message: str, *, line_no: int | None = None) -> None:
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class TraceValidationError(TraceError):
    """A trace value is structurally incomplete (e.g. no root span)."""


class TraceNotFoundError(TraceError):
    """The store has no trace with the requested id."""

    def __init__(self, trace_id: str) -> None:
        self.trace_id = trace_id
        super().__init__(f"Trace not found: {trace_id}")


class SpanNotFoundError(TraceError):
    """A span id does not resolve inside the trace."""

    def __init__(self, trace_id: str, span_id: str) -> None:
        self.trace_id = trace_id
        self.span_id = span_id
        super().__init__(f"Span {span_id} not found in {trace_id}")


class SpanStateError(TraceError):
    """Illegal status transition or mutation of a finalized trace."""
