"""
Domain models — Pydantic types for the diff pipeline.

All models are re-exported here for convenient access:

    from chart_val.core.models import DiffResult, EnvironmentConfig, PRContext, Status
"""

from chart_val.core.models.diff import NO_CHANGES_SUMMARY, DiffResult, Status, diff_label
from chart_val.core.models.environment import EnvironmentConfig
from chart_val.core.models.failure import ChartFailure
from chart_val.core.models.pull_request import PRContext, parse_pr_url

__all__ = [
    "NO_CHANGES_SUMMARY",
    # failure.py
    "ChartFailure",
    # diff.py
    "DiffResult",
    # environment.py
    "EnvironmentConfig",
    # pull_request.py
    "PRContext",
    "Status",
    "diff_label",
    "parse_pr_url",
]
