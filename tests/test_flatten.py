"""
Tests for the flattening encoder — record order, field presence, deep trees.
"""

from __future__ import annotations

import json

from agenttrace.core.models.records import EventRecord, SpanRecord, TraceRecord
from agenttrace.core.models.trace import Span, Trace
from agenttrace.core.services.trace.flatten import dumps_jsonl, flatten, flatten_to_lines


class TestFlattenOrder:
    def test_scenario_records(self, scenario_trace: Trace):
        records = flatten(scenario_trace)
        assert [type(r) for r in records] == [TraceRecord, SpanRecord, SpanRecord, EventRecord]
        assert [getattr(r, "span_id", None) for r in records] == [None, "root1", "child1", "child1"]

    def test_trace_record_first(self, built_trace: Trace):
        records = flatten(built_trace)
        assert isinstance(records[0], TraceRecord)
        assert sum(isinstance(r, TraceRecord) for r in records) == 1

    def test_counts_match_tree(self, built_trace: Trace):
        records = flatten(built_trace)
        assert sum(isinstance(r, SpanRecord) for r in records) == built_trace.span_count()
        assert sum(isinstance(r, EventRecord) for r in records) == built_trace.event_count()

    def test_preorder_with_events_after_their_span(self, built_trace: Trace):
        names = [(r.type, r.name) for r in flatten(built_trace) if not isinstance(r, TraceRecord)]
        assert names == [
            ("span", "session"),
            ("span", "plan"),
            ("event", "thought"),
            ("span", "tool:grep"),
            ("event", "match"),
            ("event", "done"),
            ("span", "tool:edit"),
            ("span", "respond"),
        ]

    def test_every_record_carries_trace_id(self, built_trace: Trace):
        assert {r.trace_id for r in flatten(built_trace)} == {built_trace.trace_id}


class TestFlattenFields:
    def test_root_has_no_parent(self, scenario_trace: Trace):
        root = flatten(scenario_trace)[1]
        assert root.parent_span_id is None
        assert "parentSpanId" not in json.loads(flatten_to_lines(scenario_trace)[1])

    def test_child_parent_from_traversal(self):
        # A stale back-reference on the child is not trusted.
        child = Span(span_id="c", parent_span_id="stale", name="c")
        trace = Trace(root_span=Span(span_id="r", name="r", children=[child]))
        span_records = [r for r in flatten(trace) if isinstance(r, SpanRecord)]
        assert span_records[1].parent_span_id == "r"

    def test_absent_end_time_is_omitted(self, scenario_trace: Trace):
        lines = [json.loads(line) for line in flatten_to_lines(scenario_trace)]
        assert "endTime" not in lines[0]
        assert "endTime" not in lines[1]
        assert lines[2]["endTime"] == "2026-01-15T10:00:02.500Z"
        assert all(None not in line.values() for line in lines)

    def test_camel_case_wire_names(self, scenario_trace: Trace):
        lines = [json.loads(line) for line in flatten_to_lines(scenario_trace)]
        assert lines[0] == {
            "type": "trace",
            "traceId": "trace_0123456789abcdef",
            "sessionId": "session-1",
            "startTime": "2026-01-15T10:00:00.000Z",
            "metadata": {"plugin": "agenttrace"},
        }
        assert lines[2]["attributes"] == {"tool": "grep"}
        assert lines[3] == {
            "type": "event",
            "traceId": "trace_0123456789abcdef",
            "spanId": "child1",
            "timestamp": "2026-01-15T10:00:02.000Z",
            "name": "evt1",
            "attributes": {},
        }

    def test_records_do_not_alias_tree(self, scenario_trace: Trace):
        records = flatten(scenario_trace)
        records[2].attributes["tool"] = "changed"
        assert scenario_trace.root_span.children[0].attributes == {"tool": "grep"}


class TestJsonl:
    def test_one_line_per_record(self, built_trace: Trace):
        text = dumps_jsonl(built_trace)
        assert text.endswith("\n")
        lines = text.splitlines()
        assert len(lines) == len(flatten(built_trace))
        for line in lines:
            assert isinstance(json.loads(line), dict)

    def test_deep_tree_does_not_recurse(self):
        root = Span(span_id="s0", name="s0")
        current = root
        for i in range(1, 5000):
            child = Span(span_id=f"s{i}", name=f"s{i}")
            current.children.append(child)
            current = child
        records = flatten(Trace(root_span=root))
        assert len(records) == 5001
        assert records[-1].parent_span_id == "s4998"
