"""
Tests for the diff use case — chart selection, reports, publishing.
"""

from __future__ import annotations

import pytest

from chart_val.adapters.helm.env_discovery import ValuesFileDiscovery
from chart_val.adapters.mock import (
    DirectorySource,
    RecordingPublisher,
    StaticChangedFiles,
    ValuesEchoRenderer,
)
from chart_val.core.cancel import CancelToken
from chart_val.core.engine.diff_engine import DiffEngine
from chart_val.core.engine.pipeline import DiffPipeline
from chart_val.core.engine.runner import EnvironmentRunner
from chart_val.core.errors import PipelineCancelled
from chart_val.core.use_cases.diff_pr import run_diff
from chart_val.core.use_cases.wiring import Services


@pytest.fixture
def services(tmp_path, write_chart) -> Services:
    base, head = tmp_path / "base", tmp_path / "head"
    write_chart(base, "api", {"values.yaml": "replicas: 1\n"})
    write_chart(head, "api", {"values.yaml": "replicas: 2\n"})
    write_chart(base, "web", {"values.yaml": "replicas: 1\n"})
    write_chart(head, "web", {"values.yaml": "replicas: 1\n"})

    runner = EnvironmentRunner(ValuesEchoRenderer(), DiffEngine())
    pipeline = DiffPipeline(
        DirectorySource({"main": base, "abc1234def": head}), ValuesFileDiscovery(), runner
    )
    return Services(
        pipeline=pipeline,
        changed_files=StaticChangedFiles([
            "charts/api/values.yaml",
            "README.md",
            "charts/web/templates/deployment.yaml",
            "charts/api/Chart.yaml",
        ]),
        publisher=RecordingPublisher(),
    )


class TestRunDiff:
    def test_charts_from_changed_files(self, services, pr_context):
        report = run_diff(pr_context, services)
        assert report.charts == ["api", "web"]
        assert [c.chart_name for c in report.check_runs] == ["api", "web"]
        assert [c.conclusion for c in report.check_runs] == ["neutral", "success"]
        assert report.summary.startswith("## Chart-Val Diff Report")
        assert report.has_changes
        assert not report.published

    def test_chart_filter(self, services, pr_context):
        report = run_diff(pr_context, services, charts=["web"])
        assert report.charts == ["web"]
        assert not report.has_changes

    def test_no_charts_touched(self, services, pr_context):
        services.changed_files = StaticChangedFiles(["docs/index.md"])
        report = run_diff(pr_context, services, publish=True)
        assert report.charts == []
        assert report.check_runs == []
        assert services.publisher.comments == []

    def test_publish(self, services, pr_context):
        report = run_diff(pr_context, services, publish=True)
        publisher = services.publisher
        assert report.published
        assert [(name, conclusion) for name, conclusion, _ in publisher.check_runs] == [
            ("api", "neutral"),
            ("web", "success"),
        ]
        assert publisher.check_runs[0][2].startswith("# chart-val: api\n")
        assert publisher.comments == [report.summary]

    def test_failures_appended_to_summary(self, services, pr_context):
        services.changed_files = StaticChangedFiles(["charts/ghost/values.yaml"])
        report = run_diff(pr_context, services)
        assert "### Failed charts\n- **ghost**:" in report.summary

    def test_publish_without_publisher(self, services, pr_context):
        services.publisher = None
        with pytest.raises(ValueError):
            run_diff(pr_context, services, publish=True)

    def test_cancelled(self, services, pr_context):
        token = CancelToken()
        token.cancel()
        with pytest.raises(PipelineCancelled):
            run_diff(pr_context, services, publish=True, cancel=token)
        assert services.publisher.comments == []

    def test_to_dict(self, services, pr_context):
        data = run_diff(pr_context, services).to_dict()
        assert data["pull_request"]["number"] == 42
        assert data["charts"] == ["api", "web"]
        assert data["counts"]["changes"] == 1
        assert data["check_runs"][0] == {"chart": "api", "conclusion": "neutral"}
