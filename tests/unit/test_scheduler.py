"""Unit and integration tests for the refresh scheduler."""

import threading
import time
from datetime import timedelta
from unittest.mock import Mock, patch

import pytest
from apscheduler.jobstores.base import ConflictingIdError

from feed_hub.config import SchedulerConfig
from feed_hub.core.scheduler import (
    TICK_EXECUTOR,
    TICK_JOB_ID,
    RefreshScheduler,
    SchedulerStats,
    create_scheduler,
    fetch_job_id,
)

SOURCES = [
    "https://a.example.com/feed.xml",
    "https://b.example.com/feed.xml",
    "https://c.example.com/feed.xml",
]


@pytest.fixture
def scheduler_config():
    """Scheduler settings with a fixed timezone."""
    return SchedulerConfig(timezone="UTC", max_workers=3)


@pytest.fixture
def mock_fetcher():
    """Create a fetcher double."""
    return Mock()


@pytest.fixture
def scheduler(mock_fetcher, scheduler_config):
    """Create a scheduler that ticks once an hour."""
    scheduler = RefreshScheduler(
        fetcher=mock_fetcher,
        sources=SOURCES,
        refresh_interval=timedelta(hours=1),
        config=scheduler_config,
    )
    yield scheduler
    if scheduler.is_running():
        scheduler.stop(wait=True)


class TestSchedulerStats:
    """Tests for SchedulerStats dataclass."""

    def test_scheduler_stats_creation(self):
        """Test creating scheduler stats."""
        stats = SchedulerStats()

        assert stats.ticks == 0
        assert stats.fetches_submitted == 0
        assert stats.last_cycle_timestamp is None
        assert stats.uptime_seconds == 0.0


class TestRefreshScheduler:
    """Tests for RefreshScheduler."""

    def test_init(self, scheduler, mock_fetcher):
        """Test scheduler initialization."""
        assert scheduler.fetcher is mock_fetcher
        assert scheduler.sources == SOURCES
        assert scheduler.max_workers == 3
        assert scheduler.is_running() is False

    def test_init_rejects_non_positive_interval(self, mock_fetcher, scheduler_config):
        """Test that a zero interval is rejected."""
        with pytest.raises(ValueError):
            RefreshScheduler(mock_fetcher, SOURCES, timedelta(0), config=scheduler_config)

    def test_create_scheduler(self, mock_fetcher, scheduler_config):
        """Test the factory function."""
        scheduler = create_scheduler(mock_fetcher, SOURCES, timedelta(minutes=5), config=scheduler_config)

        assert isinstance(scheduler, RefreshScheduler)
        assert scheduler.refresh_interval == timedelta(minutes=5)

    def test_tick_submits_one_fetch_per_source(self, scheduler):
        """Test that a tick fans out with one shared timestamp."""
        with patch.object(scheduler, "_submit") as mock_submit:
            cycle_timestamp = scheduler.tick()

        assert [c.args for c in mock_submit.call_args_list] == [
            (source, cycle_timestamp) for source in SOURCES
        ]
        assert scheduler.stats.ticks == 1
        assert scheduler.stats.fetches_submitted == 3
        assert scheduler.stats.last_cycle_timestamp == cycle_timestamp

    def test_tick_timestamp_format(self, scheduler):
        """Test the cycle timestamp format."""
        with patch.object(scheduler, "_submit"):
            cycle_timestamp = scheduler.tick()

        # YYYY-MM-DD HH:MM:SS
        assert len(cycle_timestamp) == 19
        assert cycle_timestamp[4] == "-" and cycle_timestamp[10] == " " and cycle_timestamp[13] == ":"

    def test_start_stop(self, scheduler):
        """Test starting and stopping scheduler."""
        scheduler.start()
        assert scheduler.is_running() is True
        assert scheduler.next_tick_time() is not None

        scheduler.stop(wait=True)
        assert scheduler.is_running() is False

    def test_start_when_already_running(self, scheduler):
        """Test starting when already running."""
        scheduler.start()
        scheduler.start()

        assert scheduler.is_running() is True
        assert len([j for j in scheduler.scheduler.get_jobs() if j.id == TICK_JOB_ID]) == 1

    def test_stop_when_not_running(self, scheduler):
        """Test stopping when not running."""
        scheduler.stop(wait=True)
        assert scheduler.is_running() is False

    def test_first_tick_fetches_every_source(self, scheduler, mock_fetcher):
        """Test that starting triggers an immediate fan-out to all sources."""
        done = threading.Event()
        calls = []
        calls_lock = threading.Lock()

        def refresh(source, cycle_timestamp):
            with calls_lock:
                calls.append((source, cycle_timestamp))
                if len(calls) == len(SOURCES):
                    done.set()

        mock_fetcher.refresh.side_effect = refresh

        scheduler.start()
        assert done.wait(timeout=10) is True

        assert sorted(source for source, _ in calls) == sorted(SOURCES)
        assert len({ts for _, ts in calls}) == 1

    def test_slow_fetch_does_not_block_tick(self, scheduler, mock_fetcher):
        """Test that ticks return while fetches are still in flight."""
        release = threading.Event()
        started = threading.Event()

        def slow_refresh(source, cycle_timestamp):
            started.set()
            release.wait(timeout=10)

        mock_fetcher.refresh.side_effect = slow_refresh
        scheduler.start()
        assert started.wait(timeout=10) is True

        # A second cycle can be submitted while the first is still running
        scheduler.tick()
        assert scheduler.stats.ticks >= 2

        release.set()

    def test_fetch_job_contains_errors(self, scheduler, mock_fetcher):
        """Test that an exception in a fetch does not propagate."""
        mock_fetcher.refresh.side_effect = RuntimeError("boom")

        assert scheduler._fetch_job(SOURCES[0], "ts") is None

    def test_get_stats_uptime(self, scheduler):
        """Test uptime is tracked while running."""
        scheduler.start()
        stats = scheduler.get_stats()

        assert stats.uptime_seconds >= 0.0

    def test_concurrent_ticks_count_every_cycle(self, scheduler):
        """Test that ticks from several threads are all recorded."""
        with patch.object(scheduler, "_submit"):
            threads = [threading.Thread(target=scheduler.tick) for _ in range(20)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

        assert scheduler.stats.ticks == 20
        assert scheduler.stats.fetches_submitted == 20 * len(SOURCES)


class TestFetchJobs:
    """Tests for per-source fetch jobs."""

    def test_fetch_job_id_is_per_source(self):
        """Test job ids differ by source and are stable."""
        assert fetch_job_id(SOURCES[0]) == fetch_job_id(SOURCES[0])
        assert fetch_job_id(SOURCES[0]) != fetch_job_id(SOURCES[1])

    def test_submit_uses_source_job_id(self, scheduler):
        """Test that fetch jobs are keyed by source and capped at one instance."""
        with patch.object(scheduler.scheduler, "add_job") as mock_add:
            scheduler._submit(SOURCES[0], "ts")

        kwargs = mock_add.call_args.kwargs
        assert kwargs["id"] == fetch_job_id(SOURCES[0])
        assert kwargs["max_instances"] == 1
        assert kwargs["replace_existing"] is False

    def test_submit_skips_pending_fetch(self, scheduler):
        """Test that a fetch already queued for a source is not an error."""
        with patch.object(
            scheduler.scheduler,
            "add_job",
            side_effect=ConflictingIdError(fetch_job_id(SOURCES[0])),
        ):
            scheduler._submit(SOURCES[0], "ts")

    def test_tick_job_runs_on_own_executor(self, scheduler):
        """Test that the tick job does not share the fetch pool."""
        scheduler.start()

        assert scheduler.scheduler.get_job(TICK_JOB_ID).executor == TICK_EXECUTOR

    def test_hung_sources_do_not_stop_refreshing(self, mock_fetcher):
        """Test that ticks and healthy fetches continue while other sources hang."""
        hung_sources = SOURCES[:2]
        healthy_source = SOURCES[2]
        release = threading.Event()
        healthy_fetches = []
        healthy_lock = threading.Lock()

        def refresh(source, cycle_timestamp):
            if source in hung_sources:
                release.wait(timeout=30)
                return
            with healthy_lock:
                healthy_fetches.append(cycle_timestamp)

        mock_fetcher.refresh.side_effect = refresh
        scheduler = RefreshScheduler(
            fetcher=mock_fetcher,
            sources=SOURCES,
            refresh_interval=timedelta(seconds=0.2),
            config=SchedulerConfig(timezone="UTC", max_workers=3),
        )

        scheduler.start()
        try:
            deadline = time.monotonic() + 10
            while time.monotonic() < deadline:
                with healthy_lock:
                    healthy_count = len(healthy_fetches)
                if scheduler.stats.ticks >= 5 and healthy_count >= 3:
                    break
                time.sleep(0.05)

            assert scheduler.stats.ticks >= 5
            assert healthy_count >= 3
            # Each hung source holds a single worker however many ticks ran
            hung_calls = [c for c in mock_fetcher.refresh.call_args_list if c.args[0] in hung_sources]
            assert len(hung_calls) == len(hung_sources)
        finally:
            release.set()
            scheduler.stop(wait=True)
