"""Periodic refresh scheduling.

Uses APScheduler to re-run the refresh cycle on a fixed interval.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "refresh"


@dataclass
class SchedulerState:
    """Status of the refresh job."""

    running: bool = False
    runs_count: int = 0
    errors_count: int = 0
    last_run_time: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def phase(self) -> str:
        return "running" if self.running else "idle"


class RefreshScheduler:
    """Runs ``job`` once at start, then every ``interval_minutes``."""

    def __init__(self, job: Callable[[], object], interval_minutes: float):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive.")
        self.job = job
        self.interval_minutes = interval_minutes
        self.state = SchedulerState()
        self._lock = threading.Lock()

        self.scheduler = BackgroundScheduler(timezone=timezone.utc)
        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def run_once(self):
        """Run one cycle unless another one is already in progress."""
        with self._lock:
            if self.state.running:
                logger.warning("Refresh already in progress; skipping trigger")
                return None
            self.state.running = True

        try:
            return self.job()
        finally:
            with self._lock:
                self.state.running = False
                self.state.runs_count += 1
                self.state.last_run_time = datetime.now(timezone.utc)

    def start(self, run_immediately: bool = True) -> None:
        """Start the scheduler, optionally running the first cycle inline."""
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        if run_immediately:
            logger.info("Running initial refresh")
            self.run_once()

        self.scheduler.add_job(
            func=self._scheduled_run,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            name="Refresh feeds",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Scheduler started (every %s minutes)", self.interval_minutes)

    def stop(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")
        else:
            logger.warning("Scheduler is not running")

    def is_running(self) -> bool:
        return self.scheduler.running

    def _scheduled_run(self):
        logger.info("Updating feeds...")
        return self.run_once()

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        logger.debug("Refresh job %s completed", event.job_id)

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        with self._lock:
            self.state.errors_count += 1
            self.state.last_error = str(event.exception)
        logger.error(
            "Refresh job %s failed; keeping previous pages: %s",
            event.job_id,
            event.exception,
        )
