"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from chart_val.core.models import PRContext


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def golden_dir(fixtures_dir: Path) -> Path:
    return fixtures_dir / "golden"


@pytest.fixture
def pr_context() -> PRContext:
    return PRContext(
        owner="acme",
        repo="platform",
        number=42,
        base_ref="main",
        head_ref="feature",
        head_sha="abc1234def",
    )


@pytest.fixture
def write_chart() -> Callable[..., Path]:
    """Write a chart directory: ``write_chart(root, name, {relpath: content})``."""

    def _write(root: Path, name: str, files: dict[str, str]) -> Path:
        chart_dir = root / "charts" / name
        chart_dir.mkdir(parents=True, exist_ok=True)
        (chart_dir / "Chart.yaml").write_text(f"apiVersion: v2\nname: {name}\nversion: 0.1.0\n")
        for relpath, content in files.items():
            target = chart_dir / relpath
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(content))
        return chart_dir

    return _write
