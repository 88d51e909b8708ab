"""PRContext — the comparison scope of a pull request event."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict


class PRContext(BaseModel):
    """Details of a pull request. Read-only input to the pipeline."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    number: int
    base_ref: str
    head_ref: str
    head_sha: str = ""

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


_PR_URL_RE = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)(?:/.*)?$")


def parse_pr_url(url: str) -> tuple[str, str, int]:
    """Split a pull request URL into ``(owner, repo, number)``.

    Raises:
        ValueError: *url* is not a GitHub pull request URL.
    """
    match = _PR_URL_RE.search(url.strip())
    if not match:
        raise ValueError(f"Not a GitHub pull request URL: {url}")
    owner, repo, number = match.groups()
    return owner, repo, int(number)
