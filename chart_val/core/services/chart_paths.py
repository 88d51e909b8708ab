"""Map changed file paths to the charts they belong to."""

from __future__ import annotations

from collections.abc import Iterable


def extract_chart_names(files: Iterable[str], charts_dir: str = "charts") -> list[str]:
    """Unique chart names from ``<charts_dir>/<name>/…`` paths, first-seen order.

    Files directly inside *charts_dir* (no chart directory) are ignored.

    >>> extract_chart_names(["charts/app/values.yaml", "README.md", "charts/app/Chart.yaml"])
    ['app']
    """
    prefix = charts_dir.strip("/") + "/" if charts_dir.strip("/") else ""
    seen: dict[str, None] = {}

    for path in files:
        path = path.removeprefix("./")
        if prefix and not path.startswith(prefix):
            continue
        name, sep, _rest = path[len(prefix):].partition("/")
        if name and sep:
            seen.setdefault(name, None)

    return list(seen)
