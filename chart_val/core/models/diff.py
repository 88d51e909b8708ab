"""
DiffResult model — the outcome of one (chart, environment) comparison.

A result is created fully formed and never changes afterwards.  Its
status is terminal:

    success  → both diff strings empty
    changes  → at least one diff string non-empty
    error    → both diff strings empty, summary holds the failure
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


NO_CHANGES_SUMMARY = "No changes detected."


class Status(StrEnum):
    """Terminal outcome of a diff."""

    SUCCESS = "success"
    CHANGES = "changes"
    ERROR = "error"


def diff_label(chart: str, environment: str, ref: str) -> str:
    """Header label for one side of a diff: ``<chart>/<env> (<ref>)``."""
    return f"{chart}/{environment} ({ref})"


class DiffResult(BaseModel):
    """Diff output for a single chart + environment pair."""

    model_config = ConfigDict(frozen=True)

    chart_name: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    base_ref: str = ""
    head_ref: str = ""
    status: Status
    unified_diff: str = ""      # line-based diff, 3 lines of context
    semantic_diff: str = ""     # dyff output, empty when unavailable
    summary: str = ""           # one-liner, or the error message on ERROR

    @model_validator(mode="after")
    def _check_status_invariants(self) -> DiffResult:
        has_diff = bool(self.unified_diff or self.semantic_diff)
        if self.status == Status.CHANGES and not has_diff:
            raise ValueError("status 'changes' requires a non-empty diff")
        if self.status != Status.CHANGES and has_diff:
            raise ValueError(f"status '{self.status}' must not carry a diff")
        return self

    @property
    def has_changes(self) -> bool:
        return self.status == Status.CHANGES

    def preferred_diff(self) -> str:
        """Semantic diff when available, otherwise the unified diff."""
        return self.semantic_diff or self.unified_diff

    # ── Factories ────────────────────────────────────────────────

    @classmethod
    def success(cls, chart_name: str, environment: str, **kwargs: Any) -> DiffResult:
        """A comparison that found no differences."""
        kwargs.setdefault("summary", NO_CHANGES_SUMMARY)
        return cls(
            chart_name=chart_name,
            environment=environment,
            status=Status.SUCCESS,
            **kwargs,
        )

    @classmethod
    def changes(
        cls,
        chart_name: str,
        environment: str,
        *,
        unified_diff: str = "",
        semantic_diff: str = "",
        **kwargs: Any,
    ) -> DiffResult:
        """A comparison that found differences."""
        kwargs.setdefault(
            "summary",
            f"Changes detected in {chart_name} for environment {environment}.",
        )
        return cls(
            chart_name=chart_name,
            environment=environment,
            status=Status.CHANGES,
            unified_diff=unified_diff,
            semantic_diff=semantic_diff,
            **kwargs,
        )

    @classmethod
    def error(cls, chart_name: str, environment: str, message: str, **kwargs: Any) -> DiffResult:
        """A comparison that could not be performed."""
        return cls(
            chart_name=chart_name,
            environment=environment,
            status=Status.ERROR,
            summary=message,
            **kwargs,
        )
