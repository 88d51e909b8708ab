"""
Git adapters — chart sources and changed files from a local repository.

Uses the git CLI, never a library binding:

    rev-parse --verify   → does the revision exist?      (TransportError)
    cat-file -e          → does the chart path exist?    (NotFoundError)
    archive              → materialise the chart in a temp workspace
    diff --name-only     → files changed between two revisions
"""

from __future__ import annotations

import io
import logging
import subprocess
import tarfile
import tempfile
from pathlib import Path

from chart_val.adapters.base import ChartCheckout, remove_tree
from chart_val.adapters.shell.process import run_process
from chart_val.adapters.vcs.archive import extract_subtree
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import NotFoundError, TransportError
from chart_val.core.models import PRContext

logger = logging.getLogger(__name__)


def run_git(
    *args: str,
    cwd: Path,
    timeout: float = 60,
    cancel: CancelToken | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a git command; a missing or hung git becomes TransportError."""
    try:
        return run_process(["git", *args], cwd=cwd, timeout=timeout, cancel=cancel)
    except subprocess.TimeoutExpired as e:
        raise TransportError(f"git {args[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise TransportError(f"git could not be started: {e}") from e


def _stderr(result: subprocess.CompletedProcess[bytes]) -> str:
    return result.stderr.decode("utf-8", errors="replace").strip()


class GitArchiveSource:
    """``SourceControl`` reading revisions of a local clone.

    ``owner`` and ``repo`` are ignored: the clone at *repo_root* is the
    repository.
    """

    def __init__(self, repo_root: Path, timeout: float = 300):
        self._root = repo_root
        self._timeout = timeout

    def fetch_chart_files(
        self,
        owner: str,
        repo: str,
        revision: str,
        chart_path: str,
        cancel: CancelToken | None = None,
    ) -> ChartCheckout:
        verify = run_git(
            "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}",
            cwd=self._root, cancel=cancel,
        )
        if verify.returncode != 0:
            raise TransportError(f"Unknown revision '{revision}' in {self._root}")

        exists = run_git("cat-file", "-e", f"{revision}:{chart_path}", cwd=self._root, cancel=cancel)
        if exists.returncode != 0:
            raise NotFoundError(chart_path, revision)

        workspace = Path(tempfile.mkdtemp(prefix="chart-val-src-"))
        release = remove_tree(workspace)
        try:
            archive = run_git(
                "archive", "--format=tar", revision, "--", chart_path,
                cwd=self._root, timeout=self._timeout, cancel=cancel,
            )
            if archive.returncode != 0:
                raise TransportError(f"git archive {revision} failed: {_stderr(archive)}")

            with tarfile.open(fileobj=io.BytesIO(archive.stdout), mode="r:") as tar:
                written = extract_subtree(tar, workspace, chart_path)
        except BaseException:
            release()
            raise

        logger.debug("Extracted %d file(s) of %s@%s to %s", written, chart_path, revision, workspace)
        return ChartCheckout(path=workspace / chart_path, _release=release)


class GitChangedFiles:
    """``ChangedFiles`` from ``git diff --name-only base...head``."""

    def __init__(self, repo_root: Path):
        self._root = repo_root

    def changed_files(self, pr: PRContext) -> list[str]:
        head = pr.head_sha or pr.head_ref
        r = run_git("diff", "--name-only", f"{pr.base_ref}...{head}", cwd=self._root)
        if r.returncode != 0:
            raise TransportError(f"git diff {pr.base_ref}...{head} failed: {_stderr(r)}")
        return [line for line in r.stdout.decode("utf-8").splitlines() if line.strip()]
