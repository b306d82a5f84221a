"""
Composition root wiring the cache, fetcher, scheduler and read paths.

One FeedHub is built per process from a validated Config and handed to the
web layer; every component shares the same FeedCache.
"""

from typing import Optional

from feed_hub.config import Config, get_config
from feed_hub.core.broadcaster import StreamBroadcaster
from feed_hub.core.cache import FeedCache
from feed_hub.core.fetcher import FeedFetcher, create_fetcher
from feed_hub.core.reader import SnapshotReader
from feed_hub.core.scheduler import RefreshScheduler, create_scheduler
from feed_hub.logger import get_logger

logger = get_logger(__name__)


class FeedHub:
    """Owns the shared feed cache and the components built around it."""

    def __init__(
        self,
        config: Optional[Config] = None,
        cache: Optional[FeedCache] = None,
        fetcher: Optional[FeedFetcher] = None,
    ):
        """Initialize the hub.

        Args:
            config: Application config (defaults to the global config)
            cache: Existing cache to share
            fetcher: Fetcher to use instead of one built from config
        """
        self.config = config or get_config()
        feeds = self.config.feeds

        self.sources = list(feeds.sources)
        self.cache = cache or FeedCache()
        self.fetcher = fetcher or create_fetcher(self.cache, self.config.fetcher)
        self.scheduler: RefreshScheduler = create_scheduler(
            fetcher=self.fetcher,
            sources=self.sources,
            refresh_interval=feeds.refresh_interval,
            config=self.config.scheduler,
        )
        self.reader = SnapshotReader(self.cache, self.sources)
        self.broadcaster = StreamBroadcaster(self.cache, self.sources, feeds.push_interval)

    def start(self) -> None:
        """Start background refreshing if enabled."""
        if not self.config.scheduler.enabled:
            logger.info("Background refresh disabled by configuration")
            return
        if not self.sources:
            logger.warning("No feed sources configured")
        self.scheduler.start()

    def stop(self, wait: bool = False) -> None:
        """Stop refreshing and end open stream sessions."""
        self.broadcaster.stop()
        if self.scheduler.is_running():
            self.scheduler.stop(wait=wait)

    def status(self) -> dict:
        """Runtime status for the status endpoint."""
        sched_stats = self.scheduler.get_stats()
        fetch_stats = self.fetcher.stats
        next_tick = self.scheduler.next_tick_time() if self.scheduler.is_running() else None

        return {
            "sources": self.sources,
            "cached_sources": len(self.cache),
            "missing_sources": self.reader.missing_sources(),
            "refresh_interval_minutes": self.config.feeds.refresh_interval_minutes,
            "push_interval_minutes": self.config.feeds.push_interval_minutes,
            "active_streams": self.broadcaster.active_sessions,
            "scheduler": {
                "running": self.scheduler.is_running(),
                "ticks": sched_stats.ticks,
                "fetches_submitted": sched_stats.fetches_submitted,
                "last_cycle_timestamp": sched_stats.last_cycle_timestamp,
                "next_tick_time": next_tick.isoformat() if next_tick else None,
                "uptime_seconds": sched_stats.uptime_seconds,
            },
            "fetcher": {
                "total": fetch_stats.total_fetches,
                "changed": fetch_stats.changed_fetches,
                "unchanged": fetch_stats.unchanged_fetches,
                "failed": fetch_stats.failed_fetches,
                "success_rate": fetch_stats.success_rate,
                "avg_time_seconds": fetch_stats.avg_time_seconds,
                "errors_by_type": dict(fetch_stats.errors_by_type),
            },
        }
