"""
chart-val — CLI entrypoint.

Usage:
    chart-val --help
    chart-val local --base main --head feature
    chart-val pr https://github.com/<owner>/<repo>/pull/<n> --post
    chart-val serve
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from chart_val import __version__
from chart_val.core.observability.logging_config import configure_from_cli


@click.group()
@click.version_option(version=__version__, prog_name="chart-val")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to chart-val.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """chart-val — Helm chart drift between pull request revisions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_from_cli(debug=debug, verbose=verbose, quiet=quiet)


@cli.command("config")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective settings (file + environment overrides)."""
    from chart_val.ui.cli.helpers import load_settings_or_exit

    settings = load_settings_or_exit(ctx)
    data = settings.model_dump(mode="json")
    if data["server"].get("webhook_secret"):
        data["server"]["webhook_secret"] = "***"

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                click.echo(f"{key}.{sub_key}: {sub_value}")
        else:
            click.echo(f"{key}: {value}")


@cli.command()
@click.option("--host", default=None, help="Bind address (default: server.host).")
@click.option("--port", "-p", default=None, type=int, help="Port number (default: server.port).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the GitHub webhook receiver."""
    from chart_val.ui.cli.helpers import load_settings_or_exit
    from chart_val.ui.web.server import create_app, run_server

    settings = load_settings_or_exit(ctx)
    host = host or settings.server.host
    port = port or settings.server.port

    app = create_app(settings)
    debug = ctx.obj.get("debug", False)

    click.echo()
    click.secho("⚡ chart-val — webhook receiver", bold=True)
    click.echo(f"   Listening: http://{host}:{port}/webhook")
    if not settings.server.webhook_secret:
        click.secho("   Signature check: off (no webhook secret)", fg="yellow")
    if debug:
        click.secho("   Logging: DEBUG (all output)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=debug)


# ── Register sub-commands from chart_val/ui/cli/ ──────────────────

from chart_val.ui.cli.diff import local, pr

cli.add_command(local)
cli.add_command(pr)


if __name__ == "__main__":
    cli()
