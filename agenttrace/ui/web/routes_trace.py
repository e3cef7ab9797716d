"""
Trace API routes — JSON access to stored traces and lifecycle actions.

Blueprint: trace_bp
Prefix: /api (applied by server.py)

Endpoints:
    GET  /api/traces                                  — list stored traces
    POST /api/traces                                  — start a trace
    GET  /api/traces/<id>                             — rebuilt tree
    DELETE /api/traces/<id>                           — delete a trace
    GET  /api/traces/<id>/records                     — flat records
    POST /api/traces/<id>/spans                       — record a span
    POST /api/traces/<id>/spans/<span_id>/events      — record an event
    POST /api/traces/<id>/spans/<span_id>/end         — end a span
    POST /api/traces/<id>/finalize                    — finalize the trace
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from agenttrace.core.errors import TraceError
from agenttrace.core.models.records import record_to_dict
from agenttrace.core.models.trace import TERMINAL_STATUSES, is_span_id
from agenttrace.core.services.trace import (
    end_span,
    finalize_trace,
    list_traces,
    record_event,
    record_span,
    start_trace,
)
from agenttrace.ui.web.helpers import get_store, status_for

logger = logging.getLogger(__name__)

trace_bp = Blueprint("trace", __name__)

_STATUSES = ("ok", "error", "in_progress")


def _trace_error(e: TraceError, action: str):  # type: ignore[no-untyped-def]
    code = status_for(e)
    if code >= 500:
        logger.error("Failed to %s: %s", action, e)
    return jsonify({"error": str(e)}), code


def _body() -> dict:
    """The JSON request body; absent counts as empty, non-objects are rejected."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


def _terminal_status(body: dict) -> str:
    status = body.get("status", "ok")
    if not isinstance(status, str) or status not in TERMINAL_STATUSES:
        raise ValueError(f"Unknown status: {status}")
    return status


def _check_span_id(span_id: object) -> None:
    if not isinstance(span_id, str) or not is_span_id(span_id):
        raise ValueError(f"Invalid span id: {span_id!r}")


def _attributes(body: dict) -> dict | None:
    attrs = body.get("attributes")
    if attrs is not None and not isinstance(attrs, dict):
        raise ValueError("attributes must be an object")
    return attrs


# ── List / start ──────────────────────────────────────────────────

@trace_bp.route("/traces")
def traces_list():
    """List stored traces (newest-first).

    Query params:
        n — max results (default 10)
    """
    try:
        n = request.args.get("n", 10, type=int)
        traces = list_traces(get_store(), limit=max(n, 0))
        return jsonify({"count": len(traces), "traces": [t.to_dict() for t in traces]})
    except Exception as e:
        logger.exception("Failed to list traces")
        return jsonify({"error": str(e)}), 500


@trace_bp.route("/traces", methods=["POST"])
def traces_start():
    """Start a trace.

    Body (JSON):
        sessionId  — owning session (optional, default "unknown")
        name       — root span name (optional, default "session")
        attributes — root span attributes (optional)
        format     — json, jsonl or html (optional)
    """
    try:
        body = _body()
        fmt = body.get("format")
        if fmt is not None and fmt not in ("json", "jsonl", "html"):
            return jsonify({"error": f"Unknown format: {fmt}"}), 400
        trace, path = start_trace(
            get_store(),
            session_id=str(body.get("sessionId") or "unknown"),
            name=str(body.get("name") or "session"),
            attributes=_attributes(body),
            fmt=fmt,
        )
        return jsonify({
            "traceId": trace.trace_id,
            "rootSpanId": trace.root_span.span_id,
            "sessionId": trace.session_id,
            "filepath": str(path),
        }), 201
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TraceError as e:
        return _trace_error(e, "start trace")
    except Exception as e:
        logger.exception("Failed to start trace")
        return jsonify({"error": str(e)}), 500


# ── Read ──────────────────────────────────────────────────────────

@trace_bp.route("/traces/<trace_id>")
def traces_get(trace_id: str):
    """Rebuilt tree: {"trace": {...}, "roots": [...]}."""
    try:
        return jsonify(get_store().rebuild(trace_id).to_dict())
    except TraceError as e:
        return _trace_error(e, f"get trace {trace_id}")


@trace_bp.route("/traces/<trace_id>/records")
def traces_records(trace_id: str):
    """Flat records in stored order."""
    try:
        records = get_store().read_records(trace_id)
        return jsonify({"traceId": trace_id, "records": [record_to_dict(r) for r in records]})
    except TraceError as e:
        return _trace_error(e, f"read records {trace_id}")


@trace_bp.route("/traces/<trace_id>", methods=["DELETE"])
def traces_delete(trace_id: str):
    """Delete every stored file of a trace."""
    if not get_store().delete(trace_id):
        return jsonify({"error": f"Trace not found: {trace_id}"}), 404
    return jsonify({"traceId": trace_id, "deleted": True})


# ── Lifecycle ─────────────────────────────────────────────────────

@trace_bp.route("/traces/<trace_id>/spans", methods=["POST"])
def traces_record_span(trace_id: str):
    """Record a span.

    Body (JSON):
        name         — span name (required)
        parentSpanId — parent span (optional, default root)
        attributes   — span attributes (optional)
        status       — ok, error or in_progress (optional)
    """
    try:
        body = _body()
        name = body.get("name")
        if not name:
            raise ValueError("name is required")
        status = body.get("status", "in_progress")
        if status not in _STATUSES:
            raise ValueError(f"Unknown status: {status}")
        parent_span_id = body.get("parentSpanId")
        if parent_span_id is not None:
            _check_span_id(parent_span_id)
        span = record_span(
            get_store(),
            trace_id,
            name=str(name),
            parent_span_id=parent_span_id,
            attributes=_attributes(body),
            status=status,
        )
        return jsonify({"traceId": trace_id, "spanId": span.span_id,
                        "parentSpanId": span.parent_span_id, "status": span.status}), 201
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TraceError as e:
        return _trace_error(e, f"record span in {trace_id}")


@trace_bp.route("/traces/<trace_id>/spans/<span_id>/events", methods=["POST"])
def traces_record_event(trace_id: str, span_id: str):
    """Record an event.  Body: name (required), attributes (optional)."""
    try:
        _check_span_id(span_id)
        body = _body()
        name = body.get("name")
        if not name:
            raise ValueError("name is required")
        event = record_event(
            get_store(), trace_id, span_id,
            name=str(name), attributes=_attributes(body),
        )
        return jsonify({"traceId": trace_id, "spanId": span_id,
                        "timestamp": event.timestamp, "name": event.name}), 201
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TraceError as e:
        return _trace_error(e, f"record event in {trace_id}")


@trace_bp.route("/traces/<trace_id>/spans/<span_id>/end", methods=["POST"])
def traces_end_span(trace_id: str, span_id: str):
    """End a span.  Body: status — ok or error (default ok)."""
    try:
        _check_span_id(span_id)
        status = _terminal_status(_body())
        span = end_span(get_store(), trace_id, span_id, status=status)
        return jsonify({"traceId": trace_id, "spanId": span.span_id,
                        "status": span.status, "endTime": span.end_time})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TraceError as e:
        return _trace_error(e, f"end span {span_id}")


@trace_bp.route("/traces/<trace_id>/finalize", methods=["POST"])
def traces_finalize(trace_id: str):
    """Finalize a trace.  Body: status — ok or error (default ok)."""
    try:
        status = _terminal_status(_body())
        trace = finalize_trace(get_store(), trace_id, status=status)
        return jsonify({"traceId": trace.trace_id, "endTime": trace.end_time,
                        "status": trace.root_span.status})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except TraceError as e:
        return _trace_error(e, f"finalize {trace_id}")
