"""
Result aggregation — group results by chart and count outcomes.

Grouping is stable: a chart's group is created on its first occurrence
and later results for the same chart are appended to it.  Nothing is
sorted or deduplicated.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import NamedTuple

from chart_val.core.models import DiffResult, Status


@dataclass
class ResultGroup:
    """All results of one chart, in evaluation order."""

    chart_name: str
    results: list[DiffResult] = field(default_factory=list)

    def __iter__(self) -> Iterator[DiffResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)


class StatusCounts(NamedTuple):
    success: int = 0
    changes: int = 0
    errors: int = 0


def group_by_chart(results: Iterable[DiffResult]) -> list[ResultGroup]:
    """Group results by chart name, preserving first-seen order."""
    groups: dict[str, ResultGroup] = {}
    for result in results:
        group = groups.get(result.chart_name)
        if group is None:
            group = groups[result.chart_name] = ResultGroup(chart_name=result.chart_name)
        group.results.append(result)
    return list(groups.values())


def count_by_status(results: Iterable[DiffResult]) -> StatusCounts:
    """Count results per terminal status."""
    success = changes = errors = 0
    for result in results:
        if result.status == Status.SUCCESS:
            success += 1
        elif result.status == Status.CHANGES:
            changes += 1
        elif result.status == Status.ERROR:
            errors += 1
    return StatusCounts(success, changes, errors)
