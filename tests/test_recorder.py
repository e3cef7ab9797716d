"""
Tests for the trace lifecycle actions and the trace summary line.
"""

from __future__ import annotations

import threading

import pytest

from agenttrace import __version__
from agenttrace.core.errors import SpanNotFoundError, SpanStateError, TraceNotFoundError
from agenttrace.core.models.trace import Span, Trace, is_trace_id
from agenttrace.core.services.trace import (
    end_span,
    finalize_trace,
    generate_summary,
    list_traces,
    query_trace,
    record_event,
    record_span,
    start_trace,
)
from agenttrace.core.services.trace.store import TraceStore


class TestLifecycle:
    def test_start_persists(self, store: TraceStore):
        trace, path = start_trace(store, session_id="abc", name="root", attributes={"k": 1})
        assert is_trace_id(trace.trace_id)
        assert path.is_file()
        assert path.suffix == ".jsonl"
        assert trace.metadata == {"plugin": "agenttrace", "version": __version__}

        loaded = query_trace(store, trace.trace_id)
        assert loaded == trace

    def test_start_with_format(self, store: TraceStore):
        _, path = start_trace(store, fmt="html")
        assert path.suffix == ".html"

    def test_record_persists_spans_and_events(self, store: TraceStore):
        trace, _ = start_trace(store, session_id="abc")
        tool = record_span(store, trace.trace_id, name="tool", attributes={"tool": "grep"})
        nested = record_span(store, trace.trace_id, name="nested", parent_span_id=tool.span_id)
        record_event(store, trace.trace_id, nested.span_id, name="hit", attributes={"n": 1})
        end_span(store, trace.trace_id, nested.span_id, status="error")

        loaded = query_trace(store, trace.trace_id)
        assert loaded.root_span.children[0].span_id == tool.span_id
        assert loaded.root_span.children[0].attributes == {"tool": "grep"}
        inner = loaded.find_span(nested.span_id)
        assert inner is not None
        assert inner.parent_span_id == tool.span_id
        assert inner.status == "error"
        assert [(e.name, e.attributes) for e in inner.events] == [("hit", {"n": 1})]

    def test_record_keeps_json_format(self, store: TraceStore):
        trace, path = start_trace(store, fmt="json")
        record_span(store, trace.trace_id, name="tool")
        assert path.is_file()
        assert store.locate(trace.trace_id) == path

    def test_finalize(self, store: TraceStore):
        trace, _ = start_trace(store)
        finalized = finalize_trace(store, trace.trace_id, status="error")
        assert finalized.end_time is not None
        assert finalized.root_span.status == "error"

        loaded = query_trace(store, trace.trace_id)
        assert loaded.is_finalized
        with pytest.raises(SpanStateError):
            record_span(store, trace.trace_id, name="late")

    def test_unknown_trace(self, store: TraceStore):
        with pytest.raises(TraceNotFoundError):
            record_span(store, "trace_ffffffffffffffff", name="x")
        with pytest.raises(TraceNotFoundError):
            finalize_trace(store, "trace_ffffffffffffffff")

    def test_unknown_span(self, store: TraceStore):
        trace, _ = start_trace(store)
        with pytest.raises(SpanNotFoundError):
            record_event(store, trace.trace_id, "span_000000000000", name="x")
        with pytest.raises(SpanNotFoundError):
            record_span(store, trace.trace_id, name="x", parent_span_id="span_000000000000")

    def test_failed_mutation_is_not_saved(self, store: TraceStore):
        trace, _ = start_trace(store)
        span = record_span(store, trace.trace_id, name="x")
        end_span(store, trace.trace_id, span.span_id)
        with pytest.raises(SpanStateError):
            end_span(store, trace.trace_id, span.span_id, status="error")
        assert query_trace(store, trace.trace_id).find_span(span.span_id).status == "ok"

    def test_concurrent_records_are_not_lost(self, store: TraceStore):
        trace, _ = start_trace(store)

        def worker(i: int) -> None:
            record_span(store, trace.trace_id, name=f"span-{i}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert query_trace(store, trace.trace_id).span_count() == 9

    def test_list(self, store: TraceStore):
        first, _ = start_trace(store, session_id="a")
        second, _ = start_trace(store, session_id="b")
        listed = {t.trace_id: t.session_id for t in list_traces(store)}
        assert listed == {first.trace_id: "a", second.trace_id: "b"}
        assert len(list_traces(store, limit=1)) == 1


class TestSummary:
    def _trace(self, end: str | None) -> Trace:
        return Trace(
            start_time="2026-01-15T10:00:00.000Z",
            end_time=end,
            root_span=Span(name="root", status="ok"),
        )

    def test_in_progress(self):
        assert generate_summary(self._trace(None)) == "1 span, 0 events — in progress"

    def test_milliseconds(self):
        assert generate_summary(self._trace("2026-01-15T10:00:00.250Z")) == (
            "1 span, 0 events — 250ms total"
        )

    def test_seconds(self):
        assert generate_summary(self._trace("2026-01-15T10:00:01.500Z")).endswith("— 1.5s total")

    def test_minutes(self):
        assert generate_summary(self._trace("2026-01-15T10:02:30.000Z")).endswith("— 2.5min total")

    def test_counts_errors(self, built_trace: Trace):
        assert generate_summary(built_trace) == "5 spans, 3 events, 1 error — in progress"
