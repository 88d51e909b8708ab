"""Pull request lookups: PR details and the files a PR touches."""

from __future__ import annotations

import logging

from chart_val.adapters.github.cli import gh_api, gh_api_json
from chart_val.core.errors import TransportError
from chart_val.core.models import PRContext

logger = logging.getLogger(__name__)


def fetch_pull_request(owner: str, repo: str, number: int) -> PRContext:
    """Resolve base/head refs and the head SHA of a pull request."""
    data = gh_api_json(f"repos/{owner}/{repo}/pulls/{number}")
    try:
        return PRContext(
            owner=owner,
            repo=repo,
            number=number,
            base_ref=data["base"]["ref"],
            head_ref=data["head"]["ref"],
            head_sha=data["head"]["sha"],
        )
    except (KeyError, TypeError) as e:
        raise TransportError(f"Unexpected pull request payload for {owner}/{repo}#{number}") from e


class GitHubPullRequestFiles:
    """``ChangedFiles`` from the pull request files API (paginated)."""

    def changed_files(self, pr: PRContext) -> list[str]:
        raw = gh_api(
            f"repos/{pr.slug}/pulls/{pr.number}/files?per_page=100",
            paginate=True,
            jq=".[].filename",
        )
        files = [line for line in raw.decode("utf-8").splitlines() if line.strip()]
        logger.debug("%s#%d touches %d file(s)", pr.slug, pr.number, len(files))
        return files
