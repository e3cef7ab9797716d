"""
Flat records — the durable, line-delimited encoding of a trace.

Three record shapes share ``traceId`` and are discriminated by ``type``:

    {"type":"trace","traceId":…,"sessionId":…,"startTime":…,"endTime":…,"metadata":{…}}
    {"type":"span","traceId":…,"spanId":…,"parentSpanId":…,"name":…,"status":…,…}
    {"type":"event","traceId":…,"spanId":…,"timestamp":…,"name":…,"attributes":{…}}

Optional fields that are unset are omitted from the line, never
written as ``null``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from agenttrace.core.models.trace import SpanStatus


class _RecordBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TraceRecord(_RecordBase):
    type: Literal["trace"] = "trace"
    trace_id: str
    session_id: str = "unknown"
    start_time: str
    end_time: str | None = None
    metadata: dict[str, Any] | None = None


class SpanRecord(_RecordBase):
    type: Literal["span"] = "span"
    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    name: str
    start_time: str
    end_time: str | None = None
    status: SpanStatus = "in_progress"
    attributes: dict[str, Any] | None = None


class EventRecord(_RecordBase):
    type: Literal["event"] = "event"
    trace_id: str
    span_id: str
    timestamp: str
    name: str
    attributes: dict[str, Any] | None = None


FlatRecord = Annotated[
    Union[TraceRecord, SpanRecord, EventRecord],
    Field(discriminator="type"),
]

# Plain union for annotations; FlatRecord carries the discriminator for validation.
AnyRecord = TraceRecord | SpanRecord | EventRecord

_RECORD_ADAPTER: TypeAdapter[FlatRecord] = TypeAdapter(FlatRecord)


def parse_record(obj: Any) -> AnyRecord:
    """Validate a decoded JSON value as a flat record.

    Raises ``pydantic.ValidationError`` on an unknown ``type`` or
    missing required fields.
    """
    return _RECORD_ADAPTER.validate_python(obj)


def record_to_dict(record: AnyRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def record_to_line(record: AnyRecord) -> str:
    """Compact one-line JSON for a record (no trailing newline)."""
    return record.model_dump_json(by_alias=True, exclude_none=True)
