"""
Trace store — date-bucketed trace files on disk.

Layout (one directory per trace start date)::

    <root>/
      2026-01-15/
        trace_0123456789abcdef.jsonl   ← flat records, one per line
        trace_fedcba9876543210.json    ← whole-trace JSON
        trace_fedcba9876543210.html    ← optional rendered report

A trace lives in exactly one data file (``.jsonl`` or ``.json``).
Every save rewrites that file atomically; there is no per-span append.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

from agenttrace.core.errors import TraceNotFoundError, TraceParseError, TraceValidationError
from agenttrace.core.models.records import AnyRecord
from agenttrace.core.models.trace import Trace, is_trace_id, parse_iso
from agenttrace.core.persistence.atomic_file import atomic_write_text
from agenttrace.core.services.trace.flatten import dumps_jsonl, flatten
from agenttrace.core.services.trace.rebuild import RebuiltTrace, parse_lines, rebuild
from agenttrace.core.services.trace.report import render_report

logger = logging.getLogger(__name__)

FORMATS = ("json", "jsonl", "html")
DATA_SUFFIXES = (".jsonl", ".json")
_DAY_FMT = "%Y-%m-%d"


@dataclass
class TraceSummary:
    """Listing entry — read from the file header, not a full load."""

    trace_id: str
    session_id: str
    start_time: str
    date: str
    size: int
    format: str
    path: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "traceId": self.trace_id,
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "date": self.date,
            "size": self.size,
            "format": self.format,
            "path": str(self.path),
        }


class TraceStore:
    """Load / save traces under a storage root."""

    def __init__(self, root: Path, default_format: str = "jsonl") -> None:
        if default_format not in FORMATS:
            raise ValueError(f"Unknown trace format: {default_format!r}")
        self.root = Path(root).expanduser()
        self.default_format = default_format

    def __repr__(self) -> str:
        return f"TraceStore({str(self.root)!r}, default_format={self.default_format!r})"

    # ── Paths ────────────────────────────────────────────────────

    def _day_dirs(self) -> list[Path]:
        """Date directories, newest first."""
        if not self.root.is_dir():
            return []
        return sorted((d for d in self.root.iterdir() if d.is_dir()), reverse=True)

    def _day_dir(self, trace: Trace) -> Path:
        try:
            day = parse_iso(trace.start_time).astimezone(UTC).strftime(_DAY_FMT)
        except ValueError as e:
            raise TraceValidationError(
                f"Trace {trace.trace_id} has an invalid startTime: {trace.start_time!r}"
            ) from e
        return self.root / day

    def locate(self, trace_id: str) -> Path | None:
        """Return the data file for ``trace_id``, or None."""
        if not is_trace_id(trace_id):
            return None
        for day in self._day_dirs():
            for suffix in DATA_SUFFIXES:
                candidate = day / f"{trace_id}{suffix}"
                if candidate.is_file():
                    return candidate
        return None

    def _require(self, trace_id: str) -> Path:
        path = self.locate(trace_id)
        if path is None:
            raise TraceNotFoundError(trace_id)
        return path

    # ── Write ────────────────────────────────────────────────────

    def save(self, trace: Trace, fmt: str | None = None) -> Path:
        """Write a trace; returns the written file (the report for ``html``).

        ``fmt`` None keeps the format of an existing file, else uses the
        store default.  ``html`` writes the JSONL data file plus a report.
        """
        if not is_trace_id(trace.trace_id):
            raise TraceValidationError(f"Invalid trace id: {trace.trace_id!r}")

        existing = self.locate(trace.trace_id)
        if fmt is None:
            fmt = existing.suffix.lstrip(".") if existing else self.default_format
        if fmt not in FORMATS:
            raise ValueError(f"Unknown trace format: {fmt!r}")

        day_dir = self._day_dir(trace)
        if fmt == "json":
            data_path = day_dir / f"{trace.trace_id}.json"
            atomic_write_text(data_path, trace.to_json() + "\n")
        else:
            data_path = day_dir / f"{trace.trace_id}.jsonl"
            atomic_write_text(data_path, dumps_jsonl(trace))

        if existing is not None and existing != data_path:
            existing.unlink(missing_ok=True)
            logger.debug("Removed stale %s", existing)

        report_path = day_dir / f"{trace.trace_id}.html"
        if fmt == "html" or report_path.is_file():
            atomic_write_text(report_path, render_report(trace))

        logger.info("Trace saved: %s (%s)", trace.trace_id, fmt)
        return report_path if fmt == "html" else data_path

    def delete(self, trace_id: str) -> bool:
        """Remove every file of a trace.  Returns False if none existed."""
        if not is_trace_id(trace_id):
            return False
        removed = False
        for day in self._day_dirs():
            for suffix in (*DATA_SUFFIXES, ".html"):
                path = day / f"{trace_id}{suffix}"
                if path.is_file():
                    path.unlink()
                    removed = True
            if removed and not any(day.iterdir()):
                day.rmdir()
        if removed:
            logger.info("Trace deleted: %s", trace_id)
        return removed

    def prune(self, retention_days: int, today: date | None = None) -> int:
        """Delete date directories older than ``retention_days``.

        Returns the number of traces removed.  Directories whose name is
        not a date are left alone.
        """
        if retention_days < 0:
            raise ValueError("retention_days must be >= 0")
        cutoff = (today or datetime.now(UTC).date()) - timedelta(days=retention_days)

        removed = 0
        for day in self._day_dirs():
            try:
                day_date = datetime.strptime(day.name, _DAY_FMT).date()
            except ValueError:
                continue
            if day_date >= cutoff:
                continue
            removed += sum(1 for f in day.iterdir() if f.suffix in DATA_SUFFIXES)
            shutil.rmtree(day)
            logger.info("Pruned trace directory %s", day.name)
        return removed

    # ── Read ─────────────────────────────────────────────────────

    def load(self, trace_id: str) -> Trace:
        """Load a trace as a tree.

        Raises:
            TraceNotFoundError: no data file for ``trace_id``.
            TraceParseError: the file contains malformed JSON.
            TraceValidationError: the file does not describe one rooted trace.
        """
        path = self._require(trace_id)
        text = _read_text(path)
        if path.suffix == ".json":
            return Trace.from_json(text)
        return rebuild(parse_lines(text)).to_trace()

    def read_records(self, trace_id: str) -> list[AnyRecord]:
        """The trace's flat records (flattened on the fly for ``.json``)."""
        path = self._require(trace_id)
        text = _read_text(path)
        if path.suffix == ".json":
            return flatten(Trace.from_json(text))
        return parse_lines(text)

    def rebuild(self, trace_id: str) -> RebuiltTrace:
        return rebuild(self.read_records(trace_id))

    def list_traces(self, limit: int = 10) -> list[TraceSummary]:
        """List stored traces, newest date first (up to ``limit``)."""
        summaries: list[TraceSummary] = []
        for day in self._day_dirs():
            if len(summaries) >= limit:
                break
            day_entries = [
                self._summarize(f, day.name)
                for f in day.iterdir()
                if f.is_file() and f.suffix in DATA_SUFFIXES
            ]
            day_entries.sort(key=lambda s: s.start_time, reverse=True)
            summaries.extend(day_entries)
        return summaries[:limit]

    def _summarize(self, path: Path, day: str) -> TraceSummary:
        session_id = "unknown"
        start_time = day
        try:
            with path.open(encoding="utf-8") as f:
                head = f.readline() if path.suffix == ".jsonl" else f.read()
            data = json.loads(head) if head.strip() else {}
            if isinstance(data, dict):
                session_id = str(data.get("sessionId") or session_id)
                start_time = str(data.get("startTime") or start_time)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Cannot read header of %s: %s", path.name, e)

        return TraceSummary(
            trace_id=path.stem,
            session_id=session_id,
            start_time=start_time,
            date=day,
            size=path.stat().st_size,
            format=path.suffix.lstrip("."),
            path=path,
        )


def _read_text(path: Path) -> str:
    """Read a trace file; undecodable bytes are a parse error."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise TraceParseError(f"{path.name} is not valid UTF-8: {e}") from e
