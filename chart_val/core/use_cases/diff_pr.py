"""
Diff use case — changed files → charts → pipeline → reports → publish.

Shared by the ``local`` and ``pr`` commands and the webhook receiver.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from chart_val.core.cancel import CancelToken
from chart_val.core.engine.pipeline import PipelineResult
from chart_val.core.models import PRContext
from chart_val.core.reporting.formatter import (
    check_run_conclusion,
    format_check_run,
    format_failures,
    format_summary,
)
from chart_val.core.services.chart_paths import extract_chart_names
from chart_val.core.use_cases.wiring import Services

logger = logging.getLogger(__name__)


@dataclass
class CheckRunReport:
    chart_name: str
    conclusion: str
    document: str


@dataclass
class DiffReport:
    """Outcome of one diff run over a pull request."""

    pr: PRContext
    charts: list[str] = field(default_factory=list)
    outcome: PipelineResult = field(default_factory=PipelineResult)
    check_runs: list[CheckRunReport] = field(default_factory=list)
    summary: str = ""
    published: bool = False

    @property
    def has_changes(self) -> bool:
        return self.outcome.has_changes

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "pull_request": self.pr.model_dump(mode="json"),
            "charts": self.charts,
            **self.outcome.to_dict(),
            "check_runs": [
                {"chart": c.chart_name, "conclusion": c.conclusion} for c in self.check_runs
            ],
            "published": self.published,
        }


def run_diff(
    pr: PRContext,
    services: Services,
    *,
    charts: Sequence[str] | None = None,
    publish: bool = False,
    cancel: CancelToken | None = None,
) -> DiffReport:
    """Diff every chart the pull request touches.

    Args:
        pr: The pull request to evaluate.
        services: Collaborators from ``wiring``.
        charts: Restrict the run to these chart names.
        publish: Post check runs and the summary comment.
        cancel: Abandons the run when set.

    Raises:
        PipelineCancelled: *cancel* was set before the run finished.
        TransportError: Changed files could not be listed, or publishing failed.
    """
    files = services.changed_files.changed_files(pr)
    names = extract_chart_names(files, services.charts_dir)
    if charts:
        wanted = set(charts)
        names = [name for name in names if name in wanted]

    report = DiffReport(pr=pr, charts=names)
    if not names:
        logger.info("%s#%d touches no charts under %s/", pr.slug, pr.number, services.charts_dir)
        return report

    logger.info("%s#%d: diffing %d chart(s): %s", pr.slug, pr.number, len(names), ", ".join(names))
    report.outcome = services.pipeline.run(pr, names, cancel=cancel)

    for group in report.outcome.groups():
        report.check_runs.append(
            CheckRunReport(
                chart_name=group.chart_name,
                conclusion=check_run_conclusion(group.results),
                document=format_check_run(group.results, prefix=services.check_run_prefix),
            )
        )
    report.summary = format_summary(report.outcome.results) + format_failures(report.outcome.failures)

    if publish:
        if services.publisher is None:
            raise ValueError("publish requested but no publisher is configured")
        if cancel is not None:
            cancel.raise_if_cancelled()
        for check_run in report.check_runs:
            services.publisher.publish_check_run(pr, check_run.chart_name, check_run.document, check_run.conclusion)
        services.publisher.publish_comment(pr, report.summary)
        report.published = True

    return report
