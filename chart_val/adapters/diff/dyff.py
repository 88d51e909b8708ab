"""
dyff adapter — semantic YAML diff through the dyff CLI.

Manifests are written to a private temp directory and compared with
``dyff between --color=off``.  dyff exits 1 when it finds differences,
so the exit code alone is not a failure signal; empty stdout together
with stderr output is.

Lines mentioning the temp directory are dropped here, the remaining
noise (banner, "returned N differences") is stripped by the diff engine.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from chart_val.adapters.shell.process import run_process
from chart_val.core.cancel import CancelToken

logger = logging.getLogger(__name__)


class DyffDiffer:
    """``SemanticDiffer`` backed by the dyff binary."""

    def __init__(self, binary: str = "dyff", timeout: float = 60):
        self._binary = binary
        self._timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self._binary) is not None

    def compute_semantic(
        self,
        base: bytes,
        head: bytes,
        cancel: CancelToken | None = None,
    ) -> tuple[str, bool]:
        dyff = shutil.which(self._binary)
        if dyff is None:
            return "", False

        with tempfile.TemporaryDirectory(prefix="chart-val-dyff-") as tmpdir:
            base_file = Path(tmpdir) / "base.yaml"
            head_file = Path(tmpdir) / "head.yaml"
            base_file.write_bytes(base)
            head_file.write_bytes(head)

            try:
                result = run_process(
                    [dyff, "between", "--color=off", str(base_file), str(head_file)],
                    timeout=self._timeout,
                    cancel=cancel,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.debug("dyff failed to run: %s", e)
                return "", False

            output = result.stdout.decode("utf-8", errors="replace")
            if not output.strip() and result.stderr.strip():
                logger.debug("dyff error: %s", result.stderr.decode("utf-8", errors="replace").strip())
                return "", False

            lines = [line for line in output.split("\n") if tmpdir not in line]
            return "\n".join(lines), True
