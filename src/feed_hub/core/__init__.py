"""Core modules for feed hub: cache, fetcher, scheduler and read paths."""

from feed_hub.core.broadcaster import StreamBroadcaster, Subscriber, WebSocketSubscriber
from feed_hub.core.cache import FeedCache, ReadWriteLock, is_unchanged
from feed_hub.core.fetcher import (
    FeedFetcher,
    FetchResult,
    FetchStats,
    build_snapshot,
    create_fetcher,
)
from feed_hub.core.reader import SnapshotReader
from feed_hub.core.scheduler import RefreshScheduler, SchedulerStats, create_scheduler

__all__ = [
    "FeedCache",
    "ReadWriteLock",
    "is_unchanged",
    "FeedFetcher",
    "FetchResult",
    "FetchStats",
    "build_snapshot",
    "create_fetcher",
    "RefreshScheduler",
    "SchedulerStats",
    "create_scheduler",
    "SnapshotReader",
    "StreamBroadcaster",
    "Subscriber",
    "WebSocketSubscriber",
]
