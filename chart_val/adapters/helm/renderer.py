"""
Helm renderer — ``helm template`` for one chart and its value files.

Each render gets its own temp workspace.  Charts that declare
dependencies without vendoring them are copied there first and
``helm dependency build`` runs on the copy, so concurrent renders of
the same checkout never write into a shared ``charts/`` directory.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

import yaml

from chart_val.adapters.shell.process import run_process
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import NotFoundError, RenderError

logger = logging.getLogger(__name__)


def _needs_dependency_build(chart_dir: Path) -> bool:
    """Chart.yaml declares dependencies and ``charts/`` is not vendored."""
    chart_file = chart_dir / "Chart.yaml"
    if not chart_file.is_file():
        return False
    try:
        content = yaml.safe_load(chart_file.read_text(encoding="utf-8")) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise RenderError(f"Invalid Chart.yaml in {chart_dir.name}: {e}") from e
    if not isinstance(content, dict) or not content.get("dependencies"):
        return False
    return not (chart_dir / "charts").is_dir()


class HelmRenderer:
    """``Renderer`` backed by the helm CLI.

    Args:
        binary: helm executable name or path.
        timeout: Seconds allowed per helm invocation.
    """

    def __init__(self, binary: str = "helm", timeout: float = 120):
        self._binary = binary
        self._timeout = timeout

    def render(
        self,
        chart_dir: Path,
        value_files: Sequence[str],
        cancel: CancelToken | None = None,
    ) -> bytes:
        helm = shutil.which(self._binary)
        if helm is None:
            raise RenderError("helm CLI not found")

        for value_file in value_files:
            if not (chart_dir / value_file).is_file():
                raise NotFoundError(f"{chart_dir.name}/{value_file}")

        try:
            scratch = tempfile.TemporaryDirectory(prefix="chart-val-render-")
        except OSError as e:
            raise RenderError(f"Cannot create render workspace: {e}") from e

        with scratch as workspace:
            workdir = chart_dir
            if _needs_dependency_build(chart_dir):
                workdir = Path(workspace) / chart_dir.name
                try:
                    shutil.copytree(chart_dir, workdir)
                except OSError as e:
                    raise RenderError(f"Cannot stage {chart_dir.name} for dependency build: {e}") from e
                self._run([helm, "dependency", "build", str(workdir)], workdir, cancel)

            args = [helm, "template", chart_dir.name, str(workdir)]
            for value_file in value_files:
                args.extend(["--values", str(workdir / value_file)])

            result = self._run(args, workdir, cancel)
            return result.stdout

    def _run(
        self,
        args: list[str],
        cwd: Path,
        cancel: CancelToken | None,
    ) -> subprocess.CompletedProcess[bytes]:
        try:
            result = run_process(args, cwd=cwd, timeout=self._timeout, cancel=cancel)
        except subprocess.TimeoutExpired as e:
            raise RenderError(f"helm {args[1]} timed out after {self._timeout}s") from e
        except OSError as e:
            raise RenderError(f"helm {args[1]} could not be started: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise RenderError(stderr or f"helm {args[1]} exited with code {result.returncode}")
        return result
