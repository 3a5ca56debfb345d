"""Expired artifact eviction."""

from __future__ import annotations

from .service import SWEEP_JOB_ID, SweepMetrics, SweepReport, SweeperMetricsRegistry, SweeperService

__all__ = ["SWEEP_JOB_ID", "SweepMetrics", "SweepReport", "SweeperMetricsRegistry", "SweeperService"]
