"""
Environment discovery — derive environments from a chart's value files.

Conventions (both may be mixed in one chart):

    values-<env>.yaml        next to Chart.yaml
    env/<env>-values.yaml    in an ``env/`` subdirectory

Each environment renders ``values.yaml`` (when present) followed by its
own file.  A chart without environment files gets a single ``default``
environment.  Environments are ordered by name.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from chart_val.core.errors import DiscoveryError
from chart_val.core.models import EnvironmentConfig

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "default"

_ROOT_ENV_RE = re.compile(r"^values-(.+)\.ya?ml$")
_ENV_DIR_RE = re.compile(r"^(.+)-values\.ya?ml$")


class ValuesFileDiscovery:
    """``EnvironmentDiscovery`` based on value file naming."""

    def discover_environments(self, chart_dir: Path) -> list[EnvironmentConfig]:
        if not chart_dir.is_dir():
            raise DiscoveryError(f"Chart directory not found: {chart_dir}")

        try:
            base_values = _base_values_file(chart_dir)
            env_files: dict[str, str] = {}

            for f in sorted(chart_dir.iterdir()):
                match = _ROOT_ENV_RE.match(f.name)
                if f.is_file() and match:
                    env_files.setdefault(match.group(1), f.name)

            env_dir = chart_dir / "env"
            if env_dir.is_dir():
                for f in sorted(env_dir.iterdir()):
                    match = _ENV_DIR_RE.match(f.name)
                    if f.is_file() and match:
                        env_files.setdefault(match.group(1), f"env/{f.name}")
        except OSError as e:
            raise DiscoveryError(f"Cannot read {chart_dir}: {e}") from e

        base: tuple[str, ...] = (base_values,) if base_values else ()

        if not env_files:
            logger.debug("No environment files in %s, using '%s'", chart_dir, DEFAULT_ENVIRONMENT)
            return [EnvironmentConfig(name=DEFAULT_ENVIRONMENT, value_files=base)]

        return [
            EnvironmentConfig(name=name, value_files=(*base, env_files[name]))
            for name in sorted(env_files)
        ]


def _base_values_file(chart_dir: Path) -> str | None:
    for name in ("values.yaml", "values.yml"):
        if (chart_dir / name).is_file():
            return name
    return None
