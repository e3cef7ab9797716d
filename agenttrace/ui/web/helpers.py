"""
Dashboard shared helpers.

Used by both blueprints: resolve the store from app config and map
trace errors onto HTTP status codes.
"""

from __future__ import annotations

from pathlib import Path

from flask import current_app

from agenttrace.core.errors import (
    SpanNotFoundError,
    SpanStateError,
    TraceError,
    TraceNotFoundError,
    TraceParseError,
    TraceValidationError,
)
from agenttrace.core.services.trace.store import TraceStore


def get_store() -> TraceStore:
    """TraceStore for the current app."""
    return TraceStore(
        Path(current_app.config["STORAGE_DIR"]),
        default_format=current_app.config["DEFAULT_FORMAT"],
    )


def status_for(error: TraceError) -> int:
    """HTTP status code for a trace error.

    Missing trace / span → 404, illegal transition → 409, a stored
    file that does not parse → 500 (the data is broken, not the request).
    """
    if isinstance(error, (TraceNotFoundError, SpanNotFoundError)):
        return 404
    if isinstance(error, SpanStateError):
        return 409
    if isinstance(error, (TraceParseError, TraceValidationError)):
        return 500
    return 400
