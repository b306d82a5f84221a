"""
Refresh scheduler for periodic feed fetching.

Uses APScheduler: one interval job ticks, and each tick fans out one
fire-and-forget fetch job per configured source onto the thread pool.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import ConflictingIdError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from feed_hub.config import SchedulerConfig, get_config
from feed_hub.core.fetcher import FeedFetcher, FetchResult
from feed_hub.logger import get_logger

logger = get_logger(__name__)

TICK_JOB_ID = "refresh_tick"
TICK_EXECUTOR = "tick"


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""

    ticks: int = 0
    fetches_submitted: int = 0
    last_tick_time: Optional[datetime] = None
    last_cycle_timestamp: Optional[str] = None
    uptime_seconds: float = 0.0


def fetch_job_id(source: str) -> str:
    """Job id of the fetch job for `source`."""
    return f"fetch:{source}"


class RefreshScheduler:
    """Keeps the feed cache current.

    Fetches are not awaited: a slow source from one tick may still be in
    flight when the next tick starts. Ticks run on their own executor so a
    full fetch pool never delays them. Each source has at most one fetch in
    flight; a tick that finds its previous fetch still running skips it.
    """

    def __init__(
        self,
        fetcher: FeedFetcher,
        sources: Sequence[str],
        refresh_interval: timedelta,
        config: Optional[SchedulerConfig] = None,
    ):
        """Initialize refresh scheduler.

        Args:
            fetcher: Fetcher that refreshes a single source
            sources: Configured feed URLs, in order
            refresh_interval: Time between ticks
            config: Scheduler settings (defaults to the global config)
        """
        if refresh_interval <= timedelta(0):
            raise ValueError("Refresh interval must be positive")

        config = config or get_config().scheduler

        self.fetcher = fetcher
        self.sources = list(sources)
        self.refresh_interval = refresh_interval
        self.max_workers = config.max_workers
        self.timestamp_format = config.timestamp_format

        self.scheduler = BackgroundScheduler(
            executors={
                "default": ThreadPoolExecutor(max_workers=config.max_workers),
                TICK_EXECUTOR: ThreadPoolExecutor(max_workers=1),
            },
            job_defaults={"misfire_grace_time": None},
            timezone=config.timezone,
        )
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

        self.stats = SchedulerStats()
        self._stats_lock = threading.Lock()
        self.start_time: Optional[datetime] = None

    def start(self) -> None:
        """Start ticking; the first tick fires immediately."""
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        self.scheduler.add_job(
            func=self.tick,
            trigger=IntervalTrigger(seconds=self.refresh_interval.total_seconds()),
            id=TICK_JOB_ID,
            name="Refresh feeds",
            executor=TICK_EXECUTOR,
            next_run_time=datetime.now(self.scheduler.timezone),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        self.start_time = datetime.now()
        logger.info(
            f"Scheduler started: {len(self.sources)} sources every {self.refresh_interval}, "
            f"{self.max_workers} workers"
        )

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler.

        Args:
            wait: Whether to wait for in-flight fetches to complete
        """
        if not self.scheduler.running:
            logger.warning("Scheduler is not running")
            return

        self.scheduler.shutdown(wait=wait)
        if self.start_time:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self.scheduler.running

    def tick(self) -> str:
        """Run one refresh cycle: submit a fetch for every source.

        All fetches of the cycle share one timestamp.

        Returns:
            The cycle timestamp
        """
        cycle_timestamp = datetime.now(self.scheduler.timezone).strftime(self.timestamp_format)

        for source in self.sources:
            self._submit(source, cycle_timestamp)

        with self._stats_lock:
            self.stats.ticks += 1
            self.stats.fetches_submitted += len(self.sources)
            self.stats.last_tick_time = datetime.now()
            self.stats.last_cycle_timestamp = cycle_timestamp
        logger.debug(f"Refresh cycle {cycle_timestamp}: {len(self.sources)} fetches submitted")

        return cycle_timestamp

    def get_stats(self) -> SchedulerStats:
        """Get scheduler statistics."""
        with self._stats_lock:
            if self.start_time and self.scheduler.running:
                self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        return self.stats

    def next_tick_time(self) -> Optional[datetime]:
        """When the next tick is due, or None when not scheduled."""
        job = self.scheduler.get_job(TICK_JOB_ID)
        return job.next_run_time if job else None

    def _submit(self, source: str, cycle_timestamp: str) -> None:
        """Queue a one-off fetch job for `source`.

        The job id is per source, so a fetch still waiting to be dispatched
        is not queued twice and a running one is not started twice.
        """
        try:
            self.scheduler.add_job(
                func=self._fetch_job,
                args=[source, cycle_timestamp],
                id=fetch_job_id(source),
                name=f"Fetch {source}",
                max_instances=1,
                replace_existing=False,
            )
        except ConflictingIdError:
            logger.debug(f"Fetch for {source} is still pending, not queued again")

    def _fetch_job(self, source: str, cycle_timestamp: str) -> Optional[FetchResult]:
        """Job body for one fetch; errors never reach the scheduler."""
        try:
            return self.fetcher.refresh(source, cycle_timestamp)
        except Exception as e:
            logger.exception(f"Error in fetch job for {source}: {e}")
            return None

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        """Handle job error event."""
        if event.exception:
            logger.error(
                f"Job {event.job_id} failed: {type(event.exception).__name__}: {event.exception}"
            )


def create_scheduler(
    fetcher: FeedFetcher,
    sources: Sequence[str],
    refresh_interval: timedelta,
    config: Optional[SchedulerConfig] = None,
) -> RefreshScheduler:
    """Create a configured RefreshScheduler instance."""
    return RefreshScheduler(
        fetcher=fetcher,
        sources=sources,
        refresh_interval=refresh_interval,
        config=config,
    )
