"""
Page routes — the HTML dashboard.

    GET /                    → trace listing (newest first)
    GET /trace/<trace_id>    → rebuilt span tree for one trace
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime

from flask import Blueprint, render_template

from agenttrace.core.errors import TraceError, TraceNotFoundError
from agenttrace.core.models.trace import duration_ms
from agenttrace.ui.web.helpers import get_store, status_for

logger = logging.getLogger(__name__)

pages_bp = Blueprint("pages", __name__)

# Max rows on the listing page
_LIST_LIMIT = 50


@pages_bp.route("/")
def dashboard():  # type: ignore[no-untyped-def]
    """Render the trace listing."""
    store = get_store()
    traces = store.list_traces(limit=sys.maxsize)
    today = datetime.now(UTC).strftime("%Y-%m-%d")
    return render_template(
        "dashboard.html",
        traces=traces[:_LIST_LIMIT],
        total=len(traces),
        today_count=sum(1 for t in traces if t.date == today),
        storage_dir=store.root,
    )


@pages_bp.route("/trace/<trace_id>")
def trace_detail(trace_id: str):  # type: ignore[no-untyped-def]
    """Render one trace as a tree.

    The tree is rebuilt from flat records, so partial or re-rooted
    logs render as several top-level spans rather than failing.
    """
    try:
        rebuilt = get_store().rebuild(trace_id)
    except TraceNotFoundError:
        return render_template("not_found.html", trace_id=trace_id), 404
    except TraceError as e:
        logger.error("Cannot render trace %s: %s", trace_id, e)
        return render_template("error.html", trace_id=trace_id, error=str(e)), status_for(e)

    header = rebuilt.trace
    return render_template(
        "trace.html",
        trace_id=trace_id,
        trace=header,
        roots=rebuilt.roots,
        duration=duration_ms(header.start_time, header.end_time) if header else None,
    )
