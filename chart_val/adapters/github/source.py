"""
GitHub source — chart files from a repository tarball.

``gh api repos/<owner>/<repo>/tarball/<ref>`` streams a gzipped tar of
the whole revision; only the chart subtree is extracted.  A revision
without any file under the chart path means the chart does not exist
there.
"""

from __future__ import annotations

import io
import logging
import tarfile
import tempfile
from pathlib import Path

from chart_val.adapters.base import ChartCheckout, remove_tree
from chart_val.adapters.github.cli import gh_api
from chart_val.adapters.vcs.archive import extract_subtree
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


class GitHubTarballSource:
    """``SourceControl`` backed by the GitHub tarball endpoint."""

    def __init__(self, timeout: float = 300):
        self._timeout = timeout

    def fetch_chart_files(
        self,
        owner: str,
        repo: str,
        revision: str,
        chart_path: str,
        cancel: CancelToken | None = None,
    ) -> ChartCheckout:
        payload = gh_api(
            f"repos/{owner}/{repo}/tarball/{revision}",
            timeout=self._timeout,
            cancel=cancel,
        )

        workspace = Path(tempfile.mkdtemp(prefix="chart-val-src-"))
        release = remove_tree(workspace)
        try:
            try:
                with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as tar:
                    written = extract_subtree(tar, workspace, chart_path, strip_top=True)
            except tarfile.TarError as e:
                raise TransportError(f"Invalid tarball for {owner}/{repo}@{revision}: {e}") from e

            if written == 0:
                raise NotFoundError(chart_path, revision)
        except BaseException:
            release()
            raise

        logger.debug("Extracted %d file(s) of %s@%s to %s", written, chart_path, revision, workspace)
        return ChartCheckout(path=workspace / chart_path, _release=release)
