"""
Config model — settings loaded from agenttrace.yml.

Every field has a default, so an absent file is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

TraceFormat = Literal["json", "jsonl", "html"]


def _default_storage_dir() -> Path:
    return Path.home() / ".agenttrace"


class DashboardConfig(BaseModel):
    """Bind address for the web dashboard."""

    host: str = "127.0.0.1"
    port: int = Field(default=3457, ge=1, le=65535)


class TraceConfig(BaseModel):
    """Root configuration — storage location, format and retention."""

    storage_dir: Path = Field(default_factory=_default_storage_dir)
    default_format: TraceFormat = "jsonl"
    retention_days: int | None = Field(default=None, ge=0)  # None = keep forever
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
