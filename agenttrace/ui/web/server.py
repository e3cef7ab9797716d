"""
Dashboard server — Flask app factory.

Creates the Flask application for the local trace dashboard: HTML
pages that render rebuilt span trees, plus a JSON API over the store
and the lifecycle actions.
"""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask

logger = logging.getLogger(__name__)

# Package directory for templates
_PACKAGE_DIR = Path(__file__).parent


def create_app(
    storage_dir: Path | None = None,
    default_format: str = "jsonl",
) -> Flask:
    """Create and configure the Flask application.

    Args:
        storage_dir: Trace storage root (default ``~/.agenttrace``).
        default_format: Format for traces started through the API.

    Returns:
        Configured Flask application.
    """
    app = Flask(
        __name__,
        template_folder=str(_PACKAGE_DIR / "templates"),
    )

    app.config["STORAGE_DIR"] = str(storage_dir or Path.home() / ".agenttrace")
    app.config["DEFAULT_FORMAT"] = default_format

    from agenttrace.ui.web.routes_pages import pages_bp
    from agenttrace.ui.web.routes_trace import trace_bp

    app.register_blueprint(pages_bp)
    app.register_blueprint(trace_bp, url_prefix="/api")

    from agenttrace.core.services.trace.report import STATUS_COLORS

    app.jinja_env.globals["status_colors"] = STATUS_COLORS

    logger.info("Dashboard app created (storage=%s)", app.config["STORAGE_DIR"])
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 3457,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting dashboard on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
