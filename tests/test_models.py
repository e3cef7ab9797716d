"""
Tests for trace models — identifiers, timestamps, span status, trace mutation.
"""

from __future__ import annotations

import json
import re

import pytest

from agenttrace.core.errors import (
    SpanNotFoundError,
    SpanStateError,
    TraceParseError,
    TraceValidationError,
)
from agenttrace.core.models.trace import (
    Span,
    Trace,
    duration_ms,
    is_span_id,
    is_trace_id,
    new_span_id,
    new_trace_id,
    now_iso,
    parse_iso,
)


# ═══════════════════════════════════════════════════════════════════════
#  Identifiers & timestamps
# ═══════════════════════════════════════════════════════════════════════


class TestIdentifiers:
    def test_trace_id_format(self):
        tid = new_trace_id()
        assert re.fullmatch(r"trace_[0-9a-f]{16}", tid)
        assert is_trace_id(tid)

    def test_span_id_format(self):
        sid = new_span_id()
        assert re.fullmatch(r"span_[0-9a-f]{12}", sid)
        assert is_span_id(sid)

    def test_ids_are_unique(self):
        assert len({new_trace_id() for _ in range(500)}) == 500
        assert len({new_span_id() for _ in range(500)}) == 500

    def test_prefix_distinguishes_kinds(self):
        assert not is_trace_id(new_span_id())
        assert not is_span_id(new_trace_id())

    @pytest.mark.parametrize("value", [
        "", "trace_", "trace_0123456789ABCDEF", "trace_0123456789abcde",
        "../trace_0123456789abcdef", "trace_0123456789abcdef/..",
    ])
    def test_rejects_malformed_trace_ids(self, value: str):
        assert not is_trace_id(value)


class TestTimestamps:
    def test_now_iso_is_utc_with_z(self):
        ts = now_iso()
        assert ts.endswith("Z")
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", ts)

    def test_parse_iso_accepts_z_and_offset(self):
        a = parse_iso("2026-01-15T10:00:00.000Z")
        b = parse_iso("2026-01-15T10:00:00+00:00")
        assert a == b
        assert a.tzinfo is not None

    def test_duration_ms(self):
        assert duration_ms("2026-01-15T10:00:00.000Z", "2026-01-15T10:00:01.250Z") == 1250
        assert duration_ms("2026-01-15T10:00:00.000Z", None) is None
        assert duration_ms("garbage", "2026-01-15T10:00:01.250Z") is None


# ═══════════════════════════════════════════════════════════════════════
#  Span
# ═══════════════════════════════════════════════════════════════════════


class TestSpan:
    def test_defaults(self):
        span = Span(name="work")
        assert span.status == "in_progress"
        assert span.end_time is None
        assert span.attributes == {}
        assert span.children == []
        assert span.events == []
        assert is_span_id(span.span_id)

    def test_finish_sets_terminal_status_once(self):
        span = Span(name="work")
        span.finish("error")
        assert span.status == "error"
        assert span.end_time is not None

        with pytest.raises(SpanStateError):
            span.finish("ok")
        assert span.status == "error"

    def test_finish_rejects_in_progress(self):
        span = Span(name="work")
        with pytest.raises(SpanStateError):
            span.finish("in_progress")

    def test_walk_is_preorder(self):
        c1 = Span(name="c1", children=[Span(name="g1")])
        root = Span(name="root", children=[c1, Span(name="c2")])
        assert [s.name for s in root.walk()] == ["root", "c1", "g1", "c2"]

    def test_camel_case_aliases(self):
        span = Span.model_validate({
            "spanId": "span_0123456789ab",
            "parentSpanId": "span_ba9876543210",
            "name": "x",
            "startTime": "2026-01-15T10:00:00.000Z",
        })
        assert span.span_id == "span_0123456789ab"
        assert span.parent_span_id == "span_ba9876543210"
        dumped = span.model_dump(by_alias=True)
        assert "spanId" in dumped and "startTime" in dumped


# ═══════════════════════════════════════════════════════════════════════
#  Trace
# ═══════════════════════════════════════════════════════════════════════


class TestTrace:
    def test_start(self):
        trace = Trace.start("s1", name="session", attributes={"a": 1}, metadata={"m": True})
        assert is_trace_id(trace.trace_id)
        assert trace.session_id == "s1"
        assert trace.root_span.name == "session"
        assert trace.root_span.status == "in_progress"
        assert trace.root_span.parent_span_id is None
        assert trace.root_span.attributes == {"a": 1}
        assert trace.metadata == {"m": True}
        assert not trace.is_finalized

    def test_start_defaults_session_to_unknown(self):
        assert Trace.start("").session_id == "unknown"
        assert Trace.start().session_id == "unknown"

    def test_add_span_defaults_to_root(self):
        trace = Trace.start()
        span = trace.add_span("child")
        assert span.parent_span_id == trace.root_span.span_id
        assert trace.root_span.children == [span]

    def test_add_span_preserves_insertion_order(self):
        trace = Trace.start()
        names = [trace.add_span(f"s{i}").name for i in range(5)]
        assert [c.name for c in trace.root_span.children] == names

    def test_add_span_with_terminal_status(self):
        trace = Trace.start()
        span = trace.add_span("quick", status="ok")
        assert span.status == "ok"
        assert span.end_time == span.start_time

    def test_add_span_unknown_parent(self):
        trace = Trace.start()
        with pytest.raises(SpanNotFoundError):
            trace.add_span("orphan", parent_span_id="span_000000000000")

    def test_add_event_and_counts(self, built_trace: Trace):
        assert built_trace.span_count() == 5
        assert built_trace.event_count() == 3

    def test_end_span(self):
        trace = Trace.start()
        span = trace.add_span("work")
        trace.end_span(span.span_id, "error")
        assert trace.find_span(span.span_id).status == "error"

    def test_finalize_closes_root(self):
        trace = Trace.start()
        trace.finalize("ok")
        assert trace.is_finalized
        assert trace.root_span.status == "ok"
        assert trace.root_span.end_time == trace.end_time

    def test_finalize_keeps_closed_root(self):
        trace = Trace.start()
        trace.end_span(trace.root_span.span_id, "error")
        trace.finalize("ok")
        assert trace.root_span.status == "error"

    def test_finalized_trace_is_immutable(self):
        trace = Trace.start()
        span = trace.add_span("work")
        trace.finalize()
        with pytest.raises(SpanStateError):
            trace.add_span("late")
        with pytest.raises(SpanStateError):
            trace.add_event(span.span_id, "late")
        with pytest.raises(SpanStateError):
            trace.end_span(span.span_id)
        with pytest.raises(SpanStateError):
            trace.finalize()

    def test_finalize_rejects_in_progress_status(self):
        trace = Trace.start()
        with pytest.raises(SpanStateError):
            trace.finalize("in_progress")
        assert not trace.is_finalized


class TestTraceJson:
    def test_round_trip(self, built_trace: Trace):
        assert Trace.from_json(built_trace.to_json()) == built_trace

    def test_absent_fields_are_omitted(self):
        data = json.loads(Trace.start().to_json())
        assert "endTime" not in data
        assert "parentSpanId" not in data["rootSpan"]
        assert "endTime" not in data["rootSpan"]

    def test_missing_root_span(self):
        with pytest.raises(TraceValidationError):
            Trace.from_json({"traceId": "trace_0123456789abcdef", "sessionId": "s"})

    def test_invalid_json(self):
        with pytest.raises(TraceParseError):
            Trace.from_json("{not json")

    def test_non_object(self):
        with pytest.raises(TraceValidationError):
            Trace.from_json("[1, 2]")
