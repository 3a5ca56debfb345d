"""Background removal of artifacts older than their time-to-live."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from threading import Lock
from time import perf_counter
from typing import Any, Callable
from uuid import uuid4

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from mindmapsys.config import SweeperConfig
from mindmapsys.storage import ArtifactStore

SWEEP_JOB_ID = "sweep"
_FOLLOW_UP_JOB_ID = "sweep-after-generation"


@dataclass(slots=True)
class SweepReport:
    """Outcome of a single sweep pass."""

    scanned: int = 0
    removed: int = 0
    errors: int = 0
    skipped: bool = False


@dataclass(slots=True)
class SweepMetrics:
    """Cumulative sweeper statistics."""

    total_runs: int = 0
    skipped_runs: int = 0
    artifacts_removed: int = 0
    delete_errors: int = 0
    last_status: str | None = None
    last_error: str | None = None
    last_start_time: datetime | None = None
    last_end_time: datetime | None = None
    last_duration_seconds: float | None = None
    next_run_time: datetime | None = None


class SweeperMetricsRegistry:
    """Thread-safe metrics collector for sweep runs."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._metrics = SweepMetrics()

    def record_run(self, report: SweepReport, start_time: datetime, end_time: datetime, duration: float) -> None:
        with self._lock:
            self._metrics.total_runs += 1
            self._metrics.artifacts_removed += report.removed
            self._metrics.delete_errors += report.errors
            self._metrics.last_status = "success" if report.errors == 0 else "partial"
            self._metrics.last_error = None
            self._metrics.last_start_time = start_time
            self._metrics.last_end_time = end_time
            self._metrics.last_duration_seconds = duration

    def record_failure(self, error: str, start_time: datetime, end_time: datetime, duration: float) -> None:
        with self._lock:
            self._metrics.total_runs += 1
            self._metrics.last_status = "failure"
            self._metrics.last_error = error
            self._metrics.last_start_time = start_time
            self._metrics.last_end_time = end_time
            self._metrics.last_duration_seconds = duration

    def record_skip(self) -> None:
        with self._lock:
            self._metrics.skipped_runs += 1

    def set_next_run(self, next_run: datetime | None) -> None:
        with self._lock:
            self._metrics.next_run_time = next_run

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return asdict(self._metrics)

    def export_prometheus(self) -> str:
        with self._lock:
            metrics = SweepMetrics(**asdict(self._metrics))

        lines: list[str] = []
        lines.append("# HELP sweeper_runs_total Total number of completed sweep runs.")
        lines.append("# TYPE sweeper_runs_total counter")
        lines.append(f"sweeper_runs_total {metrics.total_runs}")

        lines.append("# HELP sweeper_skipped_runs_total Sweeps skipped because another sweep was in progress.")
        lines.append("# TYPE sweeper_skipped_runs_total counter")
        lines.append(f"sweeper_skipped_runs_total {metrics.skipped_runs}")

        lines.append("# HELP sweeper_artifacts_removed_total Number of expired artifacts deleted.")
        lines.append("# TYPE sweeper_artifacts_removed_total counter")
        lines.append(f"sweeper_artifacts_removed_total {metrics.artifacts_removed}")

        lines.append("# HELP sweeper_delete_errors_total Number of deletions that failed and were skipped.")
        lines.append("# TYPE sweeper_delete_errors_total counter")
        lines.append(f"sweeper_delete_errors_total {metrics.delete_errors}")

        if metrics.last_duration_seconds is not None:
            lines.append("# HELP sweeper_last_duration_seconds Duration of the last sweep in seconds.")
            lines.append("# TYPE sweeper_last_duration_seconds gauge")
            lines.append(f"sweeper_last_duration_seconds {metrics.last_duration_seconds}")

        if metrics.last_end_time is not None:
            lines.append("# HELP sweeper_last_end_timestamp_seconds End timestamp of the last sweep (epoch seconds).")
            lines.append("# TYPE sweeper_last_end_timestamp_seconds gauge")
            lines.append(f"sweeper_last_end_timestamp_seconds {metrics.last_end_time.timestamp()}")

        if metrics.next_run_time is not None:
            lines.append("# HELP sweeper_next_run_timestamp_seconds Timestamp of the next scheduled sweep (epoch seconds).")
            lines.append("# TYPE sweeper_next_run_timestamp_seconds gauge")
            lines.append(f"sweeper_next_run_timestamp_seconds {metrics.next_run_time.timestamp()}")

        return "\n".join(lines) + "\n"


class SweeperService:
    """Runs eviction passes on an interval, independent of request handling.

    The sweeper only talks to the :class:`ArtifactStore` interface. Passes
    never overlap: a pass requested while another is running is skipped.
    """

    def __init__(
        self,
        store: ArtifactStore,
        config: SweeperConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        dry_run: bool = False,
    ) -> None:
        self.store = store
        self.config = config or SweeperConfig()
        self.dry_run = dry_run
        self._clock = clock
        self.scheduler = BackgroundScheduler(timezone="UTC")
        self.metrics = SweeperMetricsRegistry()
        self._run_lock = Lock()

    def sweep_once(self, *, ttl_seconds: float | None = None) -> SweepReport:
        """Delete every artifact whose last modification is older than the TTL.

        Deletion errors are logged and skipped. Entries created after the scan
        began may not be visited until the next pass.
        """

        ttl = self.config.ttl_seconds if ttl_seconds is None else ttl_seconds
        if not self._run_lock.acquire(blocking=False):
            logger.info("Sweep already in progress; skipping this pass.")
            self.metrics.record_skip()
            return SweepReport(skipped=True)

        try:
            return self._sweep(ttl)
        finally:
            self._run_lock.release()

    def _sweep(self, ttl: float) -> SweepReport:
        run_id = uuid4().hex
        bound_logger = logger.bind(job_id=SWEEP_JOB_ID, run_id=run_id)
        start_time = datetime.now(timezone.utc)
        timer_start = perf_counter()
        cutoff = self._clock() - ttl
        report = SweepReport()

        bound_logger.info("Sweep started", ttl_seconds=ttl, dry_run=self.dry_run)
        try:
            for entry in self.store.iter_entries():
                report.scanned += 1
                if entry.modified_at >= cutoff:
                    continue
                if self.dry_run:
                    bound_logger.info("[Dry Run] Would remove {} ({})", entry.artifact_id, entry.kind.value)
                    continue
                try:
                    if self.store.delete(entry.artifact_id, entry.kind):
                        report.removed += 1
                except OSError as exc:
                    report.errors += 1
                    bound_logger.warning(
                        "Failed to remove expired artifact {} ({}): {}",
                        entry.artifact_id,
                        entry.kind.value,
                        exc,
                    )
        except Exception as exc:
            duration = perf_counter() - timer_start
            self.metrics.record_failure(str(exc), start_time, datetime.now(timezone.utc), duration)
            bound_logger.error("Sweep failed", duration_seconds=duration, error=str(exc))
            raise

        duration = perf_counter() - timer_start
        self.metrics.record_run(report, start_time, datetime.now(timezone.utc), duration)
        self.metrics.set_next_run(self._next_run_time())
        bound_logger.info(
            "Sweep finished",
            scanned=report.scanned,
            removed=report.removed,
            errors=report.errors,
            duration_seconds=duration,
        )
        return report

    def setup_jobs(self) -> None:
        """Register the periodic sweep job."""
        if not self.config.enabled:
            logger.warning("Sweeper is disabled in the configuration. No sweep job will be scheduled.")
            return

        logger.info("Registering sweep job every {}s (ttl={}s)", self.config.interval_seconds, self.config.ttl_seconds)
        self.scheduler.add_job(
            self._run_job,
            IntervalTrigger(seconds=self.config.interval_seconds, timezone="UTC"),
            id=SWEEP_JOB_ID,
            name="artifact-sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.metrics.set_next_run(self._next_run_time())

        if self.dry_run:
            logger.info("[Dry Run] Sweep job has been validated and registered. Sweeper will not be started.")

    def start(self) -> None:
        """Starts the scheduler if not in dry run mode."""
        if self.dry_run:
            logger.info("[Dry Run] Sweeper start is skipped.")
            return
        if not self.scheduler.get_jobs():
            logger.warning("No sweep job is scheduled. The sweeper will not start.")
            return
        if self.scheduler.running:
            logger.info("Sweeper is already running.")
            return

        logger.info("Starting sweeper...")
        self.scheduler.start()

    def shutdown(self) -> None:
        """Shuts down the scheduler gracefully."""
        if self.scheduler.running:
            logger.info("Shutting down sweeper...")
            self.scheduler.shutdown(wait=False)
            logger.info("Sweeper has been shut down.")
        else:
            logger.info("Sweeper is not running.")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    def trigger(self) -> bool:
        """Schedule an immediate out-of-band sweep; ``False`` if the sweeper is not running."""
        if not self.scheduler.running:
            logger.debug("Sweeper is not running; immediate sweep not scheduled.")
            return False

        self.scheduler.add_job(
            self._run_job,
            trigger="date",
            run_date=datetime.now(timezone.utc),
            id=_FOLLOW_UP_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.wakeup()
        return True

    def request_sweep(self, *_: Any) -> None:
        """Post-generation hook: opportunistically schedule a sweep."""
        if self.config.enabled and self.config.sweep_after_generation:
            self.trigger()

    def status(self) -> dict[str, Any]:
        snapshot = self.metrics.snapshot()
        next_run = self._next_run_time()
        return {
            "enabled": self.config.enabled,
            "running": self.running,
            "ttl_seconds": self.config.ttl_seconds,
            "interval_seconds": self.config.interval_seconds,
            "next_run_time": next_run.isoformat() if next_run else None,
            "metrics": {
                key: value.isoformat() if isinstance(value, datetime) else value
                for key, value in snapshot.items()
            },
        }

    def export_metrics(self) -> str:
        """Return Prometheus-formatted metrics."""
        return self.metrics.export_prometheus()

    def _run_job(self) -> None:
        self.sweep_once()

    def _next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(SWEEP_JOB_ID)
        if job is None:
            return None
        try:
            return job.next_run_time
        except AttributeError:
            return None


__all__ = ["SweepMetrics", "SweepReport", "SweeperMetricsRegistry", "SweeperService", "SWEEP_JOB_ID"]
