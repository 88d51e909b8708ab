"""
Diff pipeline — evaluate every changed chart of a pull request.

Flow per chart:
    fetch head → fetch base → discover environments → run environments

A chart missing at one revision is a new (or removed) chart and is
compared against empty manifests.  A chart whose sources cannot be
fetched at all becomes a ChartFailure; the remaining charts still run.

Charts keep the order of the input list.  Checkouts are released on
every exit path, including cancellation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field

from chart_val.adapters.base import ChartCheckout, EnvironmentDiscovery, SourceControl
from chart_val.core.cancel import CancelToken
from chart_val.core.engine.aggregator import ResultGroup, StatusCounts, count_by_status, group_by_chart
from chart_val.core.engine.runner import ChartRevision, EnvironmentRunner
from chart_val.core.errors import DiscoveryError, NotFoundError, TransportError
from chart_val.core.models import ChartFailure, DiffResult, PRContext

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything one pipeline run produced."""

    results: list[DiffResult] = field(default_factory=list)
    failures: list[ChartFailure] = field(default_factory=list)

    def groups(self) -> list[ResultGroup]:
        return group_by_chart(self.results)

    def counts(self) -> StatusCounts:
        return count_by_status(self.results)

    @property
    def has_changes(self) -> bool:
        return self.counts().changes > 0

    def to_dict(self) -> dict:
        counts = self.counts()
        return {
            "counts": counts._asdict(),
            "results": [r.model_dump(mode="json") for r in self.results],
            "failures": [f.model_dump(mode="json") for f in self.failures],
        }


class DiffPipeline:
    """Run the environment runner for each chart of a pull request."""

    def __init__(
        self,
        source: SourceControl,
        discovery: EnvironmentDiscovery,
        runner: EnvironmentRunner,
        charts_dir: str = "charts",
    ):
        self._source = source
        self._discovery = discovery
        self._runner = runner
        self._charts_dir = charts_dir.strip("/")

    def chart_path(self, chart: str) -> str:
        return f"{self._charts_dir}/{chart}" if self._charts_dir else chart

    def run(
        self,
        pr: PRContext,
        charts: Sequence[str],
        cancel: CancelToken | None = None,
    ) -> PipelineResult:
        """Evaluate *charts* in order.

        Raises:
            PipelineCancelled: *cancel* was set; nothing is returned.
        """
        outcome = PipelineResult()

        for chart in charts:
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                outcome.results.extend(self.run_chart(pr, chart, cancel))
            except (TransportError, DiscoveryError) as e:
                logger.warning("✗ %s → chart evaluation failed: %s", chart, e)
                outcome.failures.append(ChartFailure(chart_name=chart, error=str(e)))

        if cancel is not None:
            cancel.raise_if_cancelled()

        counts = outcome.counts()
        logger.info(
            "Evaluated %d chart(s): %d unchanged, %d changed, %d errors, %d failed charts",
            len(charts),
            counts.success,
            counts.changes,
            counts.errors,
            len(outcome.failures),
        )
        return outcome

    def run_chart(
        self,
        pr: PRContext,
        chart: str,
        cancel: CancelToken | None = None,
    ) -> list[DiffResult]:
        """Fetch both revisions of *chart* and diff every environment.

        Raises:
            TransportError: A revision could not be fetched.
            DiscoveryError: No revision has the chart, or environments
                could not be enumerated.
        """
        path = self.chart_path(chart)
        head_revision = pr.head_sha or pr.head_ref

        with ExitStack() as stack:
            head = self._fetch(pr, head_revision, path, cancel)
            if head is not None:
                stack.callback(head.release)
            base = self._fetch(pr, pr.base_ref, path, cancel)
            if base is not None:
                stack.callback(base.release)

            # Environments come from head; a removed chart falls back to base.
            reference = head or base
            if reference is None:
                raise DiscoveryError(
                    f"{path} not found at {pr.base_ref} or {head_revision}"
                )
            environments = self._discovery.discover_environments(reference.path)
            logger.info(
                "%s: %d environment(s) [%s]",
                chart,
                len(environments),
                ", ".join(env.name for env in environments),
            )

            return self._runner.run_chart(
                chart,
                ChartRevision(ref=pr.base_ref, path=base.path if base else None),
                ChartRevision(ref=pr.head_ref, path=head.path if head else None),
                environments,
                cancel=cancel,
            )

    def _fetch(
        self,
        pr: PRContext,
        revision: str,
        path: str,
        cancel: CancelToken | None,
    ) -> ChartCheckout | None:
        try:
            return self._source.fetch_chart_files(pr.owner, pr.repo, revision, path, cancel=cancel)
        except NotFoundError as e:
            logger.info("%s — treating as empty", e)
            return None
