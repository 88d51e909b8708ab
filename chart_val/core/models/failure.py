"""ChartFailure — a chart for which no result could be produced."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ChartFailure(BaseModel):
    """Chart-level failure (sources unavailable, discovery failed)."""

    model_config = ConfigDict(frozen=True)

    chart_name: str
    error: str
