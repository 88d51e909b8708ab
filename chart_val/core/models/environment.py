"""EnvironmentConfig — a named deployment target and its value files."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EnvironmentConfig(BaseModel):
    """A deployment context (dev, staging, prod) for one chart.

    ``value_files`` are applied left to right by helm, so later files
    override earlier ones.  Paths are relative to the chart directory.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    value_files: tuple[str, ...] = ()
