"""
Environment runner — render and diff one chart across its environments.

For every environment (in discovery order) the runner renders the chart
at the base and head revisions, hands both manifests to the diff engine
and classifies the outcome:

    both diffs empty    → success
    any diff non-empty  → changes
    render failure      → error   (that environment only)

A side that does not exist (new or removed chart, or a value file that
only exists on one side) is compared as an empty manifest.

Environments are independent and run on a thread pool.  Each result is
written into the slot of its discovery index, so the returned list is
always in discovery order regardless of completion order.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from chart_val.adapters.base import Renderer
from chart_val.core.cancel import CancelToken
from chart_val.core.engine.diff_engine import DiffEngine
from chart_val.core.errors import NotFoundError, RenderError
from chart_val.core.models import DiffResult, EnvironmentConfig, diff_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartRevision:
    """One side of the comparison.

    ``path`` is None when the chart does not exist at ``ref``.
    """

    ref: str
    path: Path | None = None

    @property
    def exists(self) -> bool:
        return self.path is not None


class EnvironmentRunner:
    """Evaluate every environment of a chart.

    Args:
        renderer: Renders a chart directory with ordered value files.
        engine: Computes the semantic + unified diffs.
        max_workers: Upper bound on environments rendered concurrently.
    """

    def __init__(self, renderer: Renderer, engine: DiffEngine, max_workers: int = 4):
        self._renderer = renderer
        self._engine = engine
        self._max_workers = max(1, max_workers)

    def run_chart(
        self,
        chart: str,
        base: ChartRevision,
        head: ChartRevision,
        environments: Sequence[EnvironmentConfig],
        cancel: CancelToken | None = None,
    ) -> list[DiffResult]:
        """Return one DiffResult per environment, in discovery order.

        Raises:
            PipelineCancelled: *cancel* was set; partial results are dropped.
        """
        if not environments:
            return []

        if self._max_workers == 1 or len(environments) == 1:
            return [self._evaluate(chart, base, head, env, cancel) for env in environments]

        slots: list[DiffResult | None] = [None] * len(environments)
        workers = min(self._max_workers, len(environments))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chart-val-env") as pool:
            futures: dict[Future[DiffResult], int] = {
                pool.submit(self._evaluate, chart, base, head, env, cancel): index
                for index, env in enumerate(environments)
            }
            try:
                for future in as_completed(futures):
                    slots[futures[future]] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        if cancel is not None:
            cancel.raise_if_cancelled()
        return [slot for slot in slots if slot is not None]

    # ── Single environment ──────────────────────────────────────

    def _evaluate(
        self,
        chart: str,
        base: ChartRevision,
        head: ChartRevision,
        env: EnvironmentConfig,
        cancel: CancelToken | None,
    ) -> DiffResult:
        if cancel is not None:
            cancel.raise_if_cancelled()

        refs = {"base_ref": base.ref, "head_ref": head.ref}

        try:
            base_manifest = self._render_side(base, env, cancel)
            head_manifest = self._render_side(head, env, cancel)
        except RenderError as e:
            logger.warning("✗ %s/%s → render failed: %s", chart, env.name, e)
            return DiffResult.error(chart, env.name, str(e), **refs)

        semantic, unified = self._engine.compute_diff(
            diff_label(chart, env.name, base.ref),
            diff_label(chart, env.name, head.ref),
            base_manifest or b"",
            head_manifest or b"",
            cancel=cancel,
        )
        if cancel is not None:
            cancel.raise_if_cancelled()

        if not semantic and not unified:
            logger.info("✓ %s/%s → no changes", chart, env.name)
            return DiffResult.success(chart, env.name, **refs)

        logger.info("✓ %s/%s → changes", chart, env.name)
        return DiffResult.changes(
            chart,
            env.name,
            unified_diff=unified,
            semantic_diff=semantic,
            summary=_changes_summary(chart, env.name, base, head, base_manifest, head_manifest),
            **refs,
        )

    def _render_side(
        self,
        side: ChartRevision,
        env: EnvironmentConfig,
        cancel: CancelToken | None,
    ) -> bytes | None:
        """Rendered manifest, or None when the side does not exist."""
        if side.path is None:
            return None
        try:
            return self._renderer.render(side.path, env.value_files, cancel=cancel)
        except NotFoundError as e:
            logger.debug("%s — comparing against an empty manifest", e)
            return None


def _changes_summary(
    chart: str,
    environment: str,
    base: ChartRevision,
    head: ChartRevision,
    base_manifest: bytes | None,
    head_manifest: bytes | None,
) -> str:
    if not base.exists:
        return f"New chart {chart}: all content added for environment {environment}."
    if not head.exists:
        return f"Chart {chart} removed: all content deleted for environment {environment}."
    if base_manifest is None:
        return f"New environment {environment} for {chart}: all content added."
    if head_manifest is None:
        return f"Environment {environment} removed from {chart}: all content deleted."
    return f"Changes detected in {chart} for environment {environment}."
