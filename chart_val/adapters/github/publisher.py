"""
GitHub publisher — check runs per chart and one summary PR comment.
"""

from __future__ import annotations

import logging

from chart_val.adapters.github.cli import gh_api
from chart_val.core.models import PRContext
from chart_val.core.reporting.formatter import DEFAULT_PREFIX, check_run_title

logger = logging.getLogger(__name__)

# GitHub rejects check-run output and comment bodies above this size.
MAX_BODY_CHARS = 65535
_TRUNCATION_NOTE = "\n\n_Output truncated._\n"


def truncate_body(text: str, limit: int = MAX_BODY_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(_TRUNCATION_NOTE)] + _TRUNCATION_NOTE


class GitHubPublisher:
    """``Publisher`` posting through ``gh api``."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self._prefix = prefix

    def publish_check_run(
        self,
        pr: PRContext,
        chart_name: str,
        document: str,
        conclusion: str,
    ) -> None:
        if not pr.head_sha:
            logger.warning("No head SHA for %s#%d, skipping check run for %s", pr.slug, pr.number, chart_name)
            return

        gh_api(
            f"repos/{pr.slug}/check-runs",
            method="POST",
            body={
                "name": f"{self._prefix}: {chart_name}",
                "head_sha": pr.head_sha,
                "status": "completed",
                "conclusion": conclusion,
                "output": {
                    "title": check_run_title(chart_name),
                    "summary": truncate_body(document),
                },
            },
        )
        logger.info("Published check run for %s on %s#%d (%s)", chart_name, pr.slug, pr.number, conclusion)

    def publish_comment(self, pr: PRContext, document: str) -> None:
        gh_api(
            f"repos/{pr.slug}/issues/{pr.number}/comments",
            method="POST",
            body={"body": truncate_body(document)},
        )
        logger.info("Published summary comment on %s#%d", pr.slug, pr.number)
