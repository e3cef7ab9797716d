"""
Trace models — the in-memory tree of spans and events.

A Trace owns exactly one root Span; each Span owns its children and
its events.  JSON field names are camelCase (``traceId``, ``spanId``,
``startTime`` …) to stay compatible with logs written by other
AgentTrace producers, while Python code uses snake_case attributes.

Timestamps stay ISO-8601 UTC strings on the model — consumers parse
them on demand with ``parse_iso``.
"""

from __future__ import annotations

import json
import re
import secrets
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from agenttrace.core.errors import (
    SpanNotFoundError,
    SpanStateError,
    TraceParseError,
    TraceValidationError,
)

SpanStatus = Literal["ok", "error", "in_progress"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"ok", "error"})

_TRACE_ID_RE = re.compile(r"^trace_[0-9a-f]{16}$")
_SPAN_ID_RE = re.compile(r"^span_[0-9a-f]{12}$")


# ── Identifiers & timestamps ────────────────────────────────────


def new_trace_id() -> str:
    """Generate a trace ID: ``trace_<16 lowercase hex>``."""
    return f"trace_{secrets.token_hex(8)}"


def new_span_id() -> str:
    """Generate a span ID: ``span_<12 lowercase hex>``."""
    return f"span_{secrets.token_hex(6)}"


def is_trace_id(value: str) -> bool:
    return bool(_TRACE_ID_RE.match(value or ""))


def is_span_id(value: str) -> bool:
    return bool(_SPAN_ID_RE.match(value or ""))


def now_iso() -> str:
    """Current UTC time, e.g. ``2026-01-01T12:00:00.000Z``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(ts: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def duration_ms(start: str | None, end: str | None) -> int | None:
    """Milliseconds between two ISO timestamps, or None if either is missing/bad."""
    if not start or not end:
        return None
    try:
        return int((parse_iso(end) - parse_iso(start)).total_seconds() * 1000)
    except ValueError:
        return None


# ── Models ──────────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Event(_CamelModel):
    """A timestamped point annotation on exactly one span."""

    timestamp: str = Field(default_factory=now_iso)
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)


class Span(_CamelModel):
    """A named, timed unit of work.

    ``parent_span_id`` is a back-reference only; ownership runs through
    ``children``.  Status starts ``in_progress`` and moves to ``ok`` or
    ``error`` exactly once.
    """

    span_id: str = Field(default_factory=new_span_id)
    parent_span_id: str | None = None
    name: str
    start_time: str = Field(default_factory=now_iso)
    end_time: str | None = None
    status: SpanStatus = "in_progress"
    attributes: dict[str, Any] = Field(default_factory=dict)
    children: list[Span] = Field(default_factory=list)
    events: list[Event] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def duration_ms(self) -> int | None:
        return duration_ms(self.start_time, self.end_time)

    def finish(self, status: str = "ok", end_time: str | None = None) -> None:
        """Move the span to a terminal status.  Never reverts."""
        if status not in TERMINAL_STATUSES:
            raise SpanStateError(f"Cannot finish span {self.span_id} with status {status!r}")
        if not self.is_open:
            raise SpanStateError(
                f"Span {self.span_id} already finished with status {self.status!r}"
            )
        self.status = status  # type: ignore[assignment]
        self.end_time = end_time or now_iso()

    def add_event(self, name: str, attributes: dict[str, Any] | None = None) -> Event:
        event = Event(name=name, attributes=dict(attributes or {}))
        self.events.append(event)
        return event

    def walk(self) -> Iterator[Span]:
        """Yield this span and all descendants, pre-order."""
        stack = [self]
        while stack:
            span = stack.pop()
            yield span
            stack.extend(reversed(span.children))

    def find(self, span_id: str) -> Span | None:
        for span in self.walk():
            if span.span_id == span_id:
                return span
        return None


class Trace(_CamelModel):
    """One recorded execution session, rooted at a single span."""

    trace_id: str = Field(default_factory=new_trace_id)
    session_id: str = "unknown"
    start_time: str = Field(default_factory=now_iso)
    end_time: str | None = None
    root_span: Span
    metadata: dict[str, Any] = Field(default_factory=dict)

    # ── Construction ─────────────────────────────────────────────

    @classmethod
    def start(
        cls,
        session_id: str = "unknown",
        *,
        name: str = "session",
        attributes: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Trace:
        """Create a fresh in-progress trace with its root span."""
        started = now_iso()
        root = Span(name=name, start_time=started, attributes=dict(attributes or {}))
        return cls(
            session_id=session_id or "unknown",
            start_time=started,
            root_span=root,
            metadata=dict(metadata or {}),
        )

    @classmethod
    def from_json(cls, data: str | bytes | dict[str, Any]) -> Trace:
        """Load the whole-trace JSON form.

        Raises:
            TraceParseError: ``data`` is not valid JSON.
            TraceValidationError: required fields (e.g. ``rootSpan``) are missing.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise TraceParseError(f"Invalid trace JSON: {e}") from e
        if not isinstance(data, dict):
            raise TraceValidationError(f"Expected a JSON object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise TraceValidationError(f"Invalid trace: {e}") from e

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)

    # ── Queries ──────────────────────────────────────────────────

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    @property
    def duration_ms(self) -> int | None:
        return duration_ms(self.start_time, self.end_time)

    def iter_spans(self) -> Iterator[Span]:
        return self.root_span.walk()

    def find_span(self, span_id: str) -> Span | None:
        return self.root_span.find(span_id)

    def span_count(self) -> int:
        return sum(1 for _ in self.iter_spans())

    def event_count(self) -> int:
        return sum(len(s.events) for s in self.iter_spans())

    # ── Mutation ─────────────────────────────────────────────────

    def _require_span(self, span_id: str) -> Span:
        span = self.find_span(span_id)
        if span is None:
            raise SpanNotFoundError(self.trace_id, span_id)
        return span

    def _require_open(self) -> None:
        if self.is_finalized:
            raise SpanStateError(f"Trace {self.trace_id} is finalized")

    def add_span(
        self,
        name: str,
        *,
        parent_span_id: str | None = None,
        attributes: dict[str, Any] | None = None,
        status: str = "in_progress",
    ) -> Span:
        """Create a child span under ``parent_span_id`` (default: root)."""
        self._require_open()
        parent = self._require_span(parent_span_id or self.root_span.span_id)
        span = Span(
            name=name,
            parent_span_id=parent.span_id,
            attributes=dict(attributes or {}),
        )
        if status != "in_progress":
            span.finish(status, end_time=span.start_time)
        parent.children.append(span)
        return span

    def add_event(
        self,
        span_id: str,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Event:
        self._require_open()
        return self._require_span(span_id).add_event(name, attributes)

    def end_span(self, span_id: str, status: str = "ok") -> Span:
        self._require_open()
        span = self._require_span(span_id)
        span.finish(status)
        return span

    def finalize(self, status: str = "ok") -> None:
        """Set ``end_time``; the root span is finished if still open."""
        self._require_open()
        if status not in TERMINAL_STATUSES:
            raise SpanStateError(f"Cannot finalize trace with status {status!r}")
        ended = now_iso()
        if self.root_span.is_open:
            self.root_span.finish(status, end_time=ended)
        self.end_time = ended
