"""
GitHub CLI runner — every GitHub API call goes through ``gh``.

Authentication is whatever ``gh`` is configured with (``GH_TOKEN`` /
``GITHUB_TOKEN`` or ``gh auth login``).
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

from chart_val.adapters.shell.process import run_process
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import TransportError

logger = logging.getLogger(__name__)


def run_gh(
    *args: str,
    timeout: float = 30,
    cancel: CancelToken | None = None,
    stdin: bytes | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a gh CLI command and return the result."""
    try:
        return run_process(["gh", *args], timeout=timeout, cancel=cancel, stdin=stdin)
    except subprocess.TimeoutExpired as e:
        raise TransportError(f"gh {args[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise TransportError(f"gh CLI not available: {e}") from e


def gh_api(
    endpoint: str,
    *,
    method: str = "GET",
    body: dict[str, Any] | None = None,
    paginate: bool = False,
    jq: str | None = None,
    timeout: float = 30,
    cancel: CancelToken | None = None,
) -> bytes:
    """Call ``gh api`` and return the raw response body.

    Raises:
        TransportError: gh exited non-zero (HTTP error, auth, network).
    """
    args = ["api", endpoint, "--method", method]
    if paginate:
        args.append("--paginate")
    if jq:
        args.extend(["--jq", jq])
    stdin = None
    if body is not None:
        args.extend(["--input", "-"])
        stdin = json.dumps(body).encode("utf-8")

    r = run_gh(*args, timeout=timeout, cancel=cancel, stdin=stdin)
    if r.returncode != 0:
        detail = r.stderr.decode("utf-8", errors="replace").strip()
        raise TransportError(f"gh api {method} {endpoint} failed: {detail or r.returncode}")
    return r.stdout


def gh_api_json(endpoint: str, **kwargs: Any) -> Any:
    """``gh_api`` decoded as JSON."""
    raw = gh_api(endpoint, **kwargs)
    try:
        return json.loads(raw) if raw.strip() else None
    except json.JSONDecodeError as e:
        raise TransportError(f"Invalid JSON from gh api {endpoint}: {e}") from e
