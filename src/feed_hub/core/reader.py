"""
Read-only views over the feed cache.
"""

from typing import Sequence

from feed_hub.core.cache import FeedCache
from feed_hub.logger import get_logger
from feed_hub.models import FeedSnapshot

logger = get_logger(__name__)


class SnapshotReader:
    """Query surface used by the JSON endpoint, the index page and the stream."""

    def __init__(self, cache: FeedCache, sources: Sequence[str]):
        self.cache = cache
        self.sources = list(sources)

    def list_feeds(self) -> list[FeedSnapshot]:
        """Snapshots of every configured source that has data, in configured order."""
        feeds = self.cache.snapshot_all(self.sources)
        if len(feeds) < len(self.sources):
            logger.debug(f"{len(self.sources) - len(feeds)} sources have no data yet")
        return feeds

    def keywords(self) -> str:
        """Non-empty feed titles, each followed by a comma, in configured order."""
        return "".join(f"{feed.title}," for feed in self.list_feeds() if feed.title)

    def missing_sources(self) -> list[str]:
        """Configured sources with no cached snapshot yet."""
        return [source for source in self.sources if source not in self.cache]
