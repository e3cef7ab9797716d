"""
Tree rebuilder — unordered flat records → span hierarchy.

The rebuild is order-independent: all span records are indexed before
any parent or event is resolved.  It degrades instead of failing on
semantically incomplete logs:

    - more than one trace record   → the first one wins
    - duplicate span id            → the first span record wins
    - event for an unknown span    → dropped
    - unknown / self parent        → the span becomes a root
    - parent chain forming a cycle → the first span of the cycle
                                     encountered becomes a root

Malformed input (bad JSON, invalid record shape) is a different
category: ``parse_lines`` raises ``TraceParseError`` and never skips.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from agenttrace.core.errors import TraceParseError, TraceValidationError
from agenttrace.core.models.records import (
    AnyRecord,
    EventRecord,
    SpanRecord,
    TraceRecord,
    parse_record,
    record_to_dict,
)
from agenttrace.core.models.trace import Event, Span, Trace

logger = logging.getLogger(__name__)


@dataclass
class RebuiltTrace:
    """Result of a rebuild: trace header plus the root spans."""

    trace: TraceRecord | None = None
    roots: list[Span] = field(default_factory=list)

    @property
    def trace_id(self) -> str | None:
        return self.trace.trace_id if self.trace else None

    def to_trace(self) -> Trace:
        """Materialize a ``Trace``; needs a trace record and exactly one root."""
        if self.trace is None:
            raise TraceValidationError("No trace record in log")
        if len(self.roots) != 1:
            raise TraceValidationError(
                f"Trace {self.trace.trace_id} has {len(self.roots)} root spans, expected 1"
            )
        return Trace(
            trace_id=self.trace.trace_id,
            session_id=self.trace.session_id,
            start_time=self.trace.start_time,
            end_time=self.trace.end_time,
            root_span=self.roots[0],
            metadata=dict(self.trace.metadata or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary (camelCase keys)."""
        return {
            "trace": record_to_dict(self.trace) if self.trace else None,
            "roots": [
                r.model_dump(mode="json", by_alias=True, exclude_none=True)
                for r in self.roots
            ],
        }


# ── Parsing ─────────────────────────────────────────────────────


def parse_lines(text: str) -> list[AnyRecord]:
    """Parse JSONL text into flat records.

    Blank lines are skipped.  Any other bad line raises.

    Raises:
        TraceParseError: invalid JSON or not a valid flat record.
    """
    records: list[AnyRecord] = []
    # Only "\n" delimits records; other Unicode line breaks may appear raw
    # inside JSON strings.
    for line_no, line in enumerate(text.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise TraceParseError(f"invalid JSON: {e}", line_no=line_no) from e
        try:
            records.append(parse_record(obj))
        except ValidationError as e:
            raise TraceParseError(f"invalid record: {e}", line_no=line_no) from e
    return records


def _coerce(item: AnyRecord | Mapping[str, Any], index: int) -> AnyRecord:
    if isinstance(item, (TraceRecord, SpanRecord, EventRecord)):
        return item
    try:
        return parse_record(dict(item))
    except (ValidationError, TypeError, ValueError) as e:
        raise TraceParseError(f"record #{index}: invalid record: {e}") from e


# ── Rebuild ─────────────────────────────────────────────────────


def rebuild(records: Iterable[AnyRecord | Mapping[str, Any]]) -> RebuiltTrace:
    """Reconstruct the span tree from flat records in any order."""
    trace_records: list[TraceRecord] = []
    span_records: list[SpanRecord] = []
    event_records: list[EventRecord] = []

    for index, item in enumerate(records):
        record = _coerce(item, index)
        if isinstance(record, TraceRecord):
            trace_records.append(record)
        elif isinstance(record, SpanRecord):
            span_records.append(record)
        else:
            event_records.append(record)

    if len(trace_records) > 1:
        logger.debug(
            "%d trace records in log, using the first (%s)",
            len(trace_records), trace_records[0].trace_id,
        )

    # One pass over span records → lookup table.  Insertion order of
    # this dict drives root / child ordering below.
    spans: dict[str, Span] = {}
    for rec in span_records:
        if rec.span_id in spans:
            logger.debug("Duplicate span record %s ignored", rec.span_id)
            continue
        spans[rec.span_id] = Span(
            span_id=rec.span_id,
            parent_span_id=rec.parent_span_id,
            name=rec.name,
            start_time=rec.start_time,
            end_time=rec.end_time,
            status=rec.status,
            attributes=dict(rec.attributes or {}),
        )

    dropped = 0
    for rec in event_records:
        owner = spans.get(rec.span_id)
        if owner is None:
            dropped += 1
            continue
        owner.events.append(
            Event(
                timestamp=rec.timestamp,
                name=rec.name,
                attributes=dict(rec.attributes or {}),
            )
        )
    if dropped:
        logger.debug("Dropped %d orphan event(s)", dropped)

    parents = _resolve_parents(spans)

    roots: list[Span] = []
    for span_id, span in spans.items():
        parent_id = parents.get(span_id)
        if parent_id is None:
            roots.append(span)
        else:
            spans[parent_id].children.append(span)

    return RebuiltTrace(
        trace=trace_records[0] if trace_records else None,
        roots=roots,
    )


def _resolve_parents(spans: dict[str, Span]) -> dict[str, str]:
    """Map span id → parent id for every parent link that is safe to follow.

    Unknown parents and self-references are left out (→ root).  A link
    that would close a cycle is cut at the first span of the cycle in
    ``spans`` order.  Every span is walked at most once, so the cost is
    linear in the number of spans.
    """
    parents = {
        sid: span.parent_span_id
        for sid, span in spans.items()
        if span.parent_span_id and span.parent_span_id != sid
        and span.parent_span_id in spans
    }
    position = {sid: i for i, sid in enumerate(spans)}

    done: set[str] = set()
    for sid in spans:
        if sid in done:
            continue
        # Follow the parent chain until it reaches a root, a span already
        # resolved, or a span on the current path (a cycle).
        path: dict[str, int] = {}
        current: str | None = sid
        while current is not None and current not in done and current not in path:
            path[current] = len(path)
            current = parents.get(current)

        if current is not None and current in path:
            members = list(path)[path[current]:]
            cut = min(members, key=position.__getitem__)
            logger.debug("Parent cycle through %s, re-rooting it", cut)
            del parents[cut]

        done.update(path)

    return parents


def load_jsonl(text: str) -> RebuiltTrace:
    """Parse JSONL text and rebuild it."""
    return rebuild(parse_lines(text))
