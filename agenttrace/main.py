"""
AgentTrace — CLI entrypoint.

Usage:
    agenttrace --help
    agenttrace start --session abc --name session
    agenttrace record <trace_id> --name tool_call --attr tool=grep
    agenttrace finalize <trace_id>
    agenttrace web
"""

from __future__ import annotations

from pathlib import Path

import click

from agenttrace import __version__
from agenttrace.core.observability.logging_config import setup_cli_logging


@click.group()
@click.version_option(version=__version__, prog_name="agenttrace")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Path to agenttrace.yml (default: auto-detect).",
)
@click.option(
    "--storage-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Trace storage directory (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
    storage_dir: Path | None,
) -> None:
    """AgentTrace — capture and inspect agent execution traces."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_cli_logging(debug=debug, verbose=verbose, quiet=quiet)

    from agenttrace.core.config.loader import ConfigError, load_config

    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        ctx.exit(1)

    if storage_dir is not None:
        config.storage_dir = storage_dir.expanduser()
    ctx.obj["config"] = config


@cli.command()
@click.option("--host", default=None, help="Bind address (default: config).")
@click.option("--port", "-p", default=None, type=int, help="Port number (default: config).")
@click.pass_context
def web(ctx: click.Context, host: str | None, port: int | None) -> None:
    "Start the trace dashboard."
    from agenttrace.ui.web.server import create_app, run_server

    config = ctx.obj["config"]
    host = host or config.dashboard.host
    port = port or config.dashboard.port

    app = create_app(
        storage_dir=config.storage_dir,
        default_format=config.default_format,
    )

    click.echo()
    click.secho("⚡ AgentTrace Dashboard", bold=True)
    click.echo(f"   Dashboard: http://{host}:{port}")
    click.echo(f"   Traces:    {config.storage_dir}")
    if ctx.obj.get("debug"):
        click.secho("   Logging: DEBUG (all output)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=ctx.obj.get("debug", False))


# ── Register trace commands from agenttrace/ui/cli/ ───────────────

from agenttrace.ui.cli.trace import COMMANDS as _TRACE_COMMANDS  # noqa: E402

for _command in _TRACE_COMMANDS:
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
