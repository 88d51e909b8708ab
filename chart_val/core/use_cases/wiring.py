"""
Wiring — build the pipeline collaborators from Settings.

This is the only place concrete adapters are chosen.  Entry points ask
for a ``Services`` bundle and pass it on; tests build their own bundle
from fakes instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from chart_val.adapters.base import ChangedFiles, Publisher, SourceControl
from chart_val.adapters.diff.dyff import DyffDiffer
from chart_val.adapters.github.publisher import GitHubPublisher
from chart_val.adapters.github.pulls import GitHubPullRequestFiles
from chart_val.adapters.github.source import GitHubTarballSource
from chart_val.adapters.helm.env_discovery import ValuesFileDiscovery
from chart_val.adapters.helm.renderer import HelmRenderer
from chart_val.adapters.vcs.git import GitArchiveSource, GitChangedFiles
from chart_val.core.config.loader import Settings
from chart_val.core.engine.diff_engine import DiffEngine
from chart_val.core.engine.pipeline import DiffPipeline
from chart_val.core.engine.runner import EnvironmentRunner

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a diff run needs."""

    pipeline: DiffPipeline
    changed_files: ChangedFiles
    publisher: Publisher | None = None
    check_run_prefix: str = "chart-val"
    charts_dir: str = "charts"


def build_pipeline(settings: Settings, source: SourceControl) -> DiffPipeline:
    semantic = None
    if settings.semantic_diff:
        dyff = DyffDiffer(binary=settings.dyff_binary)
        if dyff.is_available():
            semantic = dyff
        else:
            logger.debug("dyff not found, semantic diffs disabled")

    renderer = HelmRenderer(binary=settings.helm_binary, timeout=settings.render_timeout)
    runner = EnvironmentRunner(renderer, DiffEngine(semantic), max_workers=settings.max_workers)
    return DiffPipeline(source, ValuesFileDiscovery(), runner, charts_dir=settings.charts_dir)


def local_services(settings: Settings, repo_root: Path) -> Services:
    """Services reading two revisions of a local clone."""
    source = GitArchiveSource(repo_root, timeout=settings.fetch_timeout)
    return Services(
        pipeline=build_pipeline(settings, source),
        changed_files=GitChangedFiles(repo_root),
        check_run_prefix=settings.check_run_prefix,
        charts_dir=settings.charts_dir,
    )


def github_services(settings: Settings, publish: bool = False) -> Services:
    """Services reading a GitHub pull request through the gh CLI."""
    source = GitHubTarballSource(timeout=settings.fetch_timeout)
    return Services(
        pipeline=build_pipeline(settings, source),
        changed_files=GitHubPullRequestFiles(),
        publisher=GitHubPublisher(prefix=settings.check_run_prefix) if publish else None,
        check_run_prefix=settings.check_run_prefix,
        charts_dir=settings.charts_dir,
    )
