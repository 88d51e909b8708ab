"""
Configuration loader — reads chart-val.yml into Settings.

The file is optional: without one every setting keeps its default.
It is searched for upward from the working directory so commands can
run from anywhere inside a repository.  ``CHART_VAL_*`` environment
variables override values from the file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "chart-val.yml"

# env var → settings field
_ENV_OVERRIDES: dict[str, str] = {
    "CHART_VAL_CHARTS_DIR": "charts_dir",
    "CHART_VAL_MAX_WORKERS": "max_workers",
    "CHART_VAL_RENDER_TIMEOUT": "render_timeout",
    "CHART_VAL_FETCH_TIMEOUT": "fetch_timeout",
    "CHART_VAL_SEMANTIC_DIFF": "semantic_diff",
    "CHART_VAL_HELM": "helm_binary",
    "CHART_VAL_DYFF": "dyff_binary",
}


class ConfigError(Exception):
    """Raised when chart-val.yml is unreadable or invalid."""


class ServerSettings(BaseModel):
    """Webhook receiver bind address."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    webhook_secret: str = ""


class Settings(BaseModel):
    """Runtime settings for every entry point."""

    charts_dir: str = "charts"
    helm_binary: str = "helm"
    dyff_binary: str = "dyff"
    max_workers: int = Field(default=4, ge=1)
    render_timeout: float = Field(default=120, gt=0)
    fetch_timeout: float = Field(default=300, gt=0)
    semantic_diff: bool = True
    check_run_prefix: str = "chart-val"
    server: ServerSettings = Field(default_factory=ServerSettings)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for chart-val.yml starting from *start_dir*, walking up.

    Returns:
        Path to the file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from *path* (or the nearest chart-val.yml) plus env overrides.

    Args:
        path: Explicit config file. If None, searches upward; a missing
            file then means defaults.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: The file is missing (when explicit), unreadable or invalid.
    """
    env = os.environ if environ is None else environ
    data: dict = {}

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    source = path or find_config_file()
    if source is not None:
        logger.debug("Loading settings from %s", source)
        data = _read_yaml(source)

    for var, key in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            data[key] = value

    secret = env.get("CHART_VAL_WEBHOOK_SECRET")
    if secret:
        server = data.get("server")
        data["server"] = {**(server if isinstance(server, dict) else {}), "webhook_secret": secret}

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _read_yaml(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data
