"""
Report formatting — Markdown documents for check runs and PR comments.

Two views of the same ordered results:

    format_check_run  → one document per chart, every environment in a
                        collapsible section, semantic and unified diffs
    format_summary    → one document across all charts, a status table
                        plus the preferred diff per chart/environment

Both are pure functions of their input: same results in, same bytes out.
That is what the golden files under ``tests/fixtures/golden`` rely on.

An ``error`` result counts as unchanged in the conclusion token and in
the table.  This matches the behaviour reports have always had.
"""

from __future__ import annotations

from collections.abc import Sequence

from chart_val.core.engine.aggregator import count_by_status
from chart_val.core.models import NO_CHANGES_SUMMARY, ChartFailure, DiffResult, Status

DEFAULT_PREFIX = "chart-val"

LABEL_CHANGED = "Changed"
LABEL_UNCHANGED = "No Changes"


def status_label(result: DiffResult) -> str:
    """Two-state display label used in section titles and tables."""
    return LABEL_CHANGED if result.status == Status.CHANGES else LABEL_UNCHANGED


def check_run_conclusion(results: Sequence[DiffResult]) -> str:
    """``neutral`` when any environment changed, otherwise ``success``."""
    if any(r.status == Status.CHANGES for r in results):
        return "neutral"
    return "success"


def check_run_title(chart_name: str) -> str:
    return f"Helm diff — {chart_name}"


def check_run_summary(results: Sequence[DiffResult]) -> str:
    """One-line tally, e.g. ``Analyzed 2 environment(s): 1 changed, 1 unchanged``."""
    changed = count_by_status(results).changes
    unchanged = len(results) - changed
    return f"Analyzed {len(results)} environment(s): {changed} changed, {unchanged} unchanged"


def format_check_run(results: Sequence[DiffResult], prefix: str = DEFAULT_PREFIX) -> str:
    """Check-run document for the results of a single chart."""
    if not results:
        return ""

    chart_name = results[0].chart_name
    parts = [
        f"# {prefix}: {chart_name}\n\n",
        "**Status:** completed\n",
        f"**Conclusion:** {check_run_conclusion(results)}\n\n",
        f"## {check_run_title(chart_name)}\n\n",
        "### Summary\n",
        f"{check_run_summary(results)}\n\n",
        "### Output\n",
    ]

    for index, result in enumerate(results):
        if index > 0:
            parts.append("\n")
        parts.append(
            f"<details><summary>{result.environment} — {status_label(result)}</summary>\n\n"
        )

        if not result.unified_diff and not result.semantic_diff:
            parts.append(f"{NO_CHANGES_SUMMARY}\n")
        else:
            if result.semantic_diff:
                parts.append("**Semantic Diff (dyff):**\n")
                parts.append(_fence(result.semantic_diff) + "\n")
            if result.unified_diff:
                parts.append("**Unified Diff (line-based):**\n")
                parts.append(_fence(result.unified_diff))

        parts.append("\n</details>\n")

    return "".join(parts)


def format_summary(results: Sequence[DiffResult]) -> str:
    """Cross-chart summary document (the PR comment)."""
    parts = [
        "## Chart-Val Diff Report\n\n",
        "| Chart | Environment | Status |\n",
        "|-------|-------------|--------|\n",
    ]
    for result in results:
        parts.append(f"| {result.chart_name} | {result.environment} | {status_label(result)} |\n")
    parts.append("\n")

    for result in results:
        parts.append(f"### {result.chart_name}/{result.environment}\n")
        if result.status != Status.CHANGES:
            parts.append(f"{NO_CHANGES_SUMMARY}\n\n")
            continue
        parts.append("<details><summary>View diff</summary>\n\n")
        parts.append(_fence(result.preferred_diff()))
        parts.append("</details>\n\n")

    return "".join(parts)


def format_failures(failures: Sequence[ChartFailure]) -> str:
    """Section listing charts that produced no results at all."""
    if not failures:
        return ""
    lines = ["### Failed charts\n"]
    for failure in failures:
        lines.append(f"- **{failure.chart_name}**: {failure.error}\n")
    lines.append("\n")
    return "".join(lines)


def _fence(diff: str) -> str:
    return f"```diff\n{diff}\n```\n"
