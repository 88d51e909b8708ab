"""
Mock adapters — in-memory test doubles for every adapter protocol.

Used by the test suite to drive the pipeline without git, gh, helm
or dyff.  Each double records the
calls it received.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from chart_val.adapters.base import ChartCheckout
from chart_val.core.cancel import CancelToken
from chart_val.core.errors import NotFoundError, RenderError, TransportError
from chart_val.core.models import EnvironmentConfig, PRContext


class DirectorySource:
    """``SourceControl`` over plain directories, one per revision.

    Args:
        revisions: revision name → repository root on disk.
    """

    def __init__(self, revisions: Mapping[str, Path]):
        self._revisions = dict(revisions)
        self.calls: list[tuple[str, str]] = []
        self.released: list[str] = []
        self._lock = threading.Lock()

    def fetch_chart_files(
        self,
        owner: str,
        repo: str,
        revision: str,
        chart_path: str,
        cancel: CancelToken | None = None,
    ) -> ChartCheckout:
        with self._lock:
            self.calls.append((revision, chart_path))
        root = self._revisions.get(revision)
        if root is None:
            raise TransportError(f"Unknown revision '{revision}'")
        path = root / chart_path
        if not path.is_dir():
            raise NotFoundError(chart_path, revision)

        def _release() -> None:
            with self._lock:
                self.released.append(revision)

        return ChartCheckout(path=path, _release=_release)


class ValuesEchoRenderer:
    """``Renderer`` whose manifest is the concatenation of its value files.

    A value file containing ``render-error`` fails with RenderError, so
    tests can script template failures in fixture directories.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Path, tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def render(
        self,
        chart_dir: Path,
        value_files: Sequence[str],
        cancel: CancelToken | None = None,
    ) -> bytes:
        with self._lock:
            self.calls.append((chart_dir, tuple(value_files)))
        chunks = []
        for value_file in value_files:
            path = chart_dir / value_file
            if not path.is_file():
                raise NotFoundError(f"{chart_dir.name}/{value_file}")
            content = path.read_bytes()
            if b"render-error" in content:
                raise RenderError(f"template error in {value_file}")
            chunks.append(content)
        return b"".join(chunks)


class StaticRenderer:
    """``Renderer`` returning scripted outputs.

    Args:
        outputs: ``(chart_dir, environment_file)`` → manifest bytes or an
            exception to raise.  The environment file is the last value
            file, or ``""`` when there are none.
        delay: Seconds to sleep per render (ordering tests).
    """

    def __init__(
        self,
        outputs: Mapping[tuple[Path, str], bytes | Exception],
        delay: float | Mapping[str, float] = 0.0,
    ):
        self._outputs = dict(outputs)
        self._delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def render(
        self,
        chart_dir: Path,
        value_files: Sequence[str],
        cancel: CancelToken | None = None,
    ) -> bytes:
        with self._lock:
            self.calls += 1
        key = (chart_dir, value_files[-1] if value_files else "")
        delay = self._delay.get(key[1], 0.0) if isinstance(self._delay, Mapping) else self._delay
        if delay:
            time.sleep(delay)
        if cancel is not None:
            cancel.raise_if_cancelled()

        output = self._outputs.get(key)
        if output is None:
            raise NotFoundError(f"{chart_dir.name}/{key[1]}")
        if isinstance(output, Exception):
            raise output
        return output


class FakeSemanticDiffer:
    """``SemanticDiffer`` returning a fixed output."""

    def __init__(self, output: str = "", available: bool = True, error: Exception | None = None):
        self._output = output
        self._available = available
        self._error = error
        self.calls = 0

    def compute_semantic(
        self,
        base: bytes,
        head: bytes,
        cancel: CancelToken | None = None,
    ) -> tuple[str, bool]:
        self.calls += 1
        if cancel is not None:
            cancel.raise_if_cancelled()
        if self._error is not None:
            raise self._error
        if not self._available:
            return "", False
        return self._output, True


class StaticDiscovery:
    """``EnvironmentDiscovery`` returning a fixed list."""

    def __init__(self, environments: Sequence[EnvironmentConfig]):
        self._environments = list(environments)
        self.calls: list[Path] = []

    def discover_environments(self, chart_dir: Path) -> list[EnvironmentConfig]:
        self.calls.append(chart_dir)
        return list(self._environments)


class StaticChangedFiles:
    """``ChangedFiles`` returning a fixed list."""

    def __init__(self, files: Sequence[str]):
        self._files = list(files)

    def changed_files(self, pr: PRContext) -> list[str]:
        return list(self._files)


class RecordingPublisher:
    """``Publisher`` that keeps everything it was asked to post."""

    def __init__(self) -> None:
        self.check_runs: list[tuple[str, str, str]] = []
        self.comments: list[str] = []

    def publish_check_run(
        self,
        pr: PRContext,
        chart_name: str,
        document: str,
        conclusion: str,
    ) -> None:
        self.check_runs.append((chart_name, conclusion, document))

    def publish_comment(self, pr: PRContext, document: str) -> None:
        self.comments.append(document)
