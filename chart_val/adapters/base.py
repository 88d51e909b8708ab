"""
Adapter protocols — the contract between the pipeline and external tools.

The pipeline only talks to the outside world through these interfaces:
fetching chart sources, rendering templates, discovering environments,
semantic diffing, listing PR files and publishing reports.  Concrete
adapters wrap CLIs (git, gh, helm, dyff); tests inject fakes from
``chart_val.adapters.mock``.

Failures are signalled with the typed errors in ``chart_val.core.errors``,
never with error strings the caller would have to parse.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from chart_val.core.cancel import CancelToken
from chart_val.core.models import EnvironmentConfig, PRContext

logger = logging.getLogger(__name__)


@dataclass
class ChartCheckout:
    """A chart directory materialised on disk for one revision.

    ``release()`` removes the temporary workspace backing ``path``.  It
    is idempotent and also runs when the checkout is used as a context
    manager.
    """

    path: Path
    _release: Callable[[], None] | None = field(default=None, repr=False)

    def release(self) -> None:
        release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> ChartCheckout:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


def remove_tree(path: Path) -> Callable[[], None]:
    """Build a release callback that deletes *path*."""

    def _release() -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to clean up temp directory %s: %s", path, e)

    return _release


class SourceControl(Protocol):
    def fetch_chart_files(
        self,
        owner: str,
        repo: str,
        revision: str,
        chart_path: str,
        cancel: CancelToken | None = None,
    ) -> ChartCheckout:
        """Materialise *chart_path* at *revision*.

        Raises:
            NotFoundError: The path does not exist at that revision.
            TransportError: The revision could not be fetched at all.
        """


class Renderer(Protocol):
    def render(
        self,
        chart_dir: Path,
        value_files: Sequence[str],
        cancel: CancelToken | None = None,
    ) -> bytes:
        """Render the chart with the ordered value files.

        Raises:
            NotFoundError: A value file does not exist in *chart_dir*.
            RenderError: Templates or values are invalid, or helm crashed.
        """


class EnvironmentDiscovery(Protocol):
    def discover_environments(self, chart_dir: Path) -> list[EnvironmentConfig]:
        """Enumerate environments in a stable order.

        Raises:
            DiscoveryError: The chart directory cannot be read.
        """


class SemanticDiffer(Protocol):
    def compute_semantic(
        self,
        base: bytes,
        head: bytes,
        cancel: CancelToken | None = None,
    ) -> tuple[str, bool]:
        """Return ``(raw_output, available)``.

        Tool failures report ``available=False``.

        Raises:
            PipelineCancelled: *cancel* was set while the tool ran.
        """


class ChangedFiles(Protocol):
    def changed_files(self, pr: PRContext) -> list[str]:
        """Paths touched by the pull request, relative to the repo root."""


class Publisher(Protocol):
    def publish_check_run(
        self,
        pr: PRContext,
        chart_name: str,
        document: str,
        conclusion: str,
    ) -> None: ...

    def publish_comment(self, pr: PRContext, document: str) -> None: ...
