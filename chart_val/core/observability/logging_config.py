"""
Logging configuration — central setup for all entrypoints.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    --debug  >  --verbose  >  --quiet  >  CHART_VAL_LOG_LEVEL  >  WARNING

Optional file output via CHART_VAL_LOG_FILE / CHART_VAL_LOG_FILE_LEVEL.

Environments render on a thread pool and webhook runs get one thread
per pull request, so DEBUG and file records carry a short worker tag:

    main     the CLI / server thread
    env-2    environment worker 2 of a chart
    pr-42    webhook run for pull request #42
"""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Mapping

LEVEL_ENV = "CHART_VAL_LOG_LEVEL"
FILE_ENV = "CHART_VAL_LOG_FILE"
FILE_LEVEL_ENV = "CHART_VAL_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# (format, datefmt) per console level; anything above INFO is bare.
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: (
        "%(asctime)s %(levelname)-5s [%(worker)s] %(name)s:%(lineno)d - %(message)s",
        "%H:%M:%S",
    ),
    # per-environment ✓/✗ lines
    logging.INFO: ("%(asctime)s %(message)s", "%H:%M:%S"),
}
_FMT_MINIMAL = "%(message)s"

_FMT_FILE = "%(asctime)s %(levelname)-5s [%(worker)s] %(name)s - %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("werkzeug", "urllib3")

_WORKER_PATTERNS = (
    (re.compile(r"^chart-val-env_(\d+)$"), "env-{}"),
    (re.compile(r"^chart-val-pr-(\d+)$"), "pr-{}"),
)


def worker_tag(thread_name: str) -> str:
    """Short tag for a thread name (see module docstring)."""
    if thread_name == "MainThread":
        return "main"
    for pattern, template in _WORKER_PATTERNS:
        match = pattern.match(thread_name)
        if match:
            return template.format(match.group(1))
    return thread_name


class WorkerFilter(logging.Filter):
    """Set ``record.worker`` from the emitting thread's name."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.worker = worker_tag(record.threadName or "")
        return True


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(LEVEL_ENV) or "WARNING"


def configure_from_cli(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Configure logging for a ``chart-val`` invocation.

    Returns:
        The numeric console level in effect.
    """
    env = os.environ if environ is None else environ
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=env)
    setup_logging(
        level=level,
        log_file=env.get(FILE_ENV) or None,
        log_file_level=env.get(FILE_LEVEL_ENV) or None,
        quiet_third_party=not debug,
    )
    return parse_level(level)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console handler and, optionally, a file handler.

    Existing root handlers are replaced, so calling this twice (tests,
    ``serve`` reloads) never duplicates output.
    """
    numeric_level = parse_level(level)
    fmt, datefmt = _CONSOLE_FORMATS.get(max(numeric_level, logging.DEBUG), (_FMT_MINIMAL, None))

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(WorkerFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        fh.addFilter(WorkerFilter())
        root.addHandler(fh)

    root.setLevel(effective_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.WARNING if quiet_third_party else logging.NOTSET
        )


def parse_level(level: str | None) -> int:
    """Convert a level name to its numeric constant; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
