"""
Process runner — subprocess execution bound to a cancel token.

Every external tool (helm, dyff, git, gh) goes through ``run_process``.
The child is polled so that a cancelled run or an expired timeout kills
it promptly instead of waiting for it to finish on its own.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

from chart_val.core.cancel import CancelToken
from chart_val.core.errors import PipelineCancelled

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.1


def run_process(
    args: list[str],
    *,
    cwd: Path | None = None,
    timeout: float = 60,
    cancel: CancelToken | None = None,
    stdin: bytes | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run *args* and capture stdout/stderr as bytes.

    Raises:
        PipelineCancelled: The token was set before or during the run.
        subprocess.TimeoutExpired: The process outlived *timeout* seconds.
        OSError: The executable could not be started.
    """
    if cancel is not None:
        cancel.raise_if_cancelled()

    logger.debug("Executing: %s (cwd=%s)", " ".join(args), cwd)
    proc = subprocess.Popen(
        args,
        cwd=str(cwd) if cwd else None,
        stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    deadline = time.monotonic() + timeout
    pending_input = stdin

    while True:
        try:
            stdout, stderr = proc.communicate(input=pending_input, timeout=_POLL_SECONDS)
            break
        except subprocess.TimeoutExpired:
            # Input is written on the first call only.
            pending_input = None
            if cancel is not None and cancel.cancelled:
                _kill(proc)
                raise PipelineCancelled(f"cancelled while running {args[0]}") from None
            if time.monotonic() >= deadline:
                _kill(proc)
                raise subprocess.TimeoutExpired(args, timeout) from None

    return subprocess.CompletedProcess(args, proc.returncode, stdout, stderr)


def _kill(proc: subprocess.Popen[bytes]) -> None:
    proc.kill()
    proc.communicate()
