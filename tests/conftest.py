"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from agenttrace.core.models.trace import Event, Span, Trace
from agenttrace.core.services.trace.store import TraceStore


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    """Return a temporary trace storage directory."""
    path = tmp_path / "traces"
    path.mkdir()
    return path


@pytest.fixture
def store(storage_dir: Path) -> TraceStore:
    """A TraceStore over a temp directory."""
    return TraceStore(storage_dir)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment variables out of every test."""
    for var in (
        "AGENTTRACE_DIR",
        "AGENTTRACE_FORMAT",
        "AGENTTRACE_LOG_LEVEL",
        "AGENTTRACE_LOG_FILE",
        "AGENTTRACE_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def scenario_trace() -> Trace:
    """root1 (in_progress) → child1 (ok) carrying evt1."""
    child = Span(
        span_id="child1",
        parent_span_id="root1",
        name="child1",
        start_time="2026-01-15T10:00:01.000Z",
        end_time="2026-01-15T10:00:02.500Z",
        status="ok",
        attributes={"tool": "grep"},
        events=[Event(timestamp="2026-01-15T10:00:02.000Z", name="evt1")],
    )
    root = Span(
        span_id="root1",
        name="root1",
        start_time="2026-01-15T10:00:00.000Z",
        children=[child],
    )
    return Trace(
        trace_id="trace_0123456789abcdef",
        session_id="session-1",
        start_time="2026-01-15T10:00:00.000Z",
        root_span=root,
        metadata={"plugin": "agenttrace"},
    )


@pytest.fixture
def built_trace() -> Trace:
    """A multi-level trace built through the model API."""
    trace = Trace.start("session-2", name="session", attributes={"agent": "coder"})
    plan = trace.add_span("plan", attributes={"steps": 3})
    trace.add_event(plan.span_id, "thought", {"text": "look at the failing test"})
    tool = trace.add_span("tool:grep", parent_span_id=plan.span_id, attributes={"pattern": "TODO"})
    trace.add_event(tool.span_id, "match", {"count": 2})
    trace.add_event(tool.span_id, "done")
    trace.end_span(tool.span_id, "ok")
    edit = trace.add_span("tool:edit", parent_span_id=plan.span_id)
    trace.end_span(edit.span_id, "error")
    trace.add_span("respond", status="ok")
    return trace
