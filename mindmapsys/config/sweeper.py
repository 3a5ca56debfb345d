"""Eviction sweeper configuration models."""

from __future__ import annotations

from pydantic import Field

from mindmapsys.config.base import BaseConfig


class SweeperConfig(BaseConfig):
    """Schedule and age threshold for removing expired artifacts."""

    enabled: bool = Field(True, description="Whether the background sweeper runs")
    ttl_seconds: float = Field(86_400.0, gt=0, description="Artifacts older than this are deleted")
    interval_seconds: float = Field(86_400.0, gt=0, description="Seconds between scheduled sweeps")
    sweep_after_generation: bool = Field(
        True, description="Also run a sweep in the background after each successful generation",
    )


__all__ = ["SweeperConfig"]
