"""Shared helpers for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from chart_val.core.config.loader import ConfigError, Settings, load_settings


def load_settings_or_exit(ctx: click.Context) -> Settings:
    """Settings for this invocation; a broken config file ends the command."""
    config_path: Path | None = ctx.obj.get("config_path") if ctx.obj else None
    try:
        return load_settings(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
