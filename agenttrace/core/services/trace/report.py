"""
Trace report — one-line summary and standalone HTML rendering.

The HTML report is the ``html`` storage format: a self-contained page
(inline CSS, no scripts) showing the span tree with status colours,
durations, attributes and events.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from agenttrace.core.models.trace import Trace

_TEMPLATES_DIR = Path(__file__).parent / "templates"

STATUS_COLORS: dict[str, str] = {
    "ok": "#10b981",
    "error": "#ef4444",
    "in_progress": "#f59e0b",
}

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def generate_summary(trace: Trace) -> str:
    """Generate a one-line summary of a trace (deterministic).

    Example: "4 spans, 3 events, 1 error — 1.2s total"
    """
    statuses: Counter[str] = Counter(s.status for s in trace.iter_spans())
    span_count = sum(statuses.values())
    event_count = trace.event_count()

    parts = [
        f"{span_count} span" + ("" if span_count == 1 else "s"),
        f"{event_count} event" + ("" if event_count == 1 else "s"),
    ]
    errors = statuses.get("error", 0)
    if errors:
        parts.append(f"{errors} error" + ("" if errors == 1 else "s"))

    summary = ", ".join(parts)

    total_ms = trace.duration_ms
    if total_ms is None:
        summary += " — in progress"
    elif total_ms > 60_000:
        summary += f" — {total_ms / 60_000:.1f}min total"
    elif total_ms > 1000:
        summary += f" — {total_ms / 1000:.1f}s total"
    else:
        summary += f" — {total_ms}ms total"

    return summary


def render_report(trace: Trace) -> str:
    """Render the standalone HTML report for a trace."""
    template = _env.get_template("report.html")
    return template.render(
        trace=trace,
        summary=generate_summary(trace),
        status_colors=STATUS_COLORS,
    )
