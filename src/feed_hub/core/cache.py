"""
In-memory feed cache shared by the refresh and read paths.

Maps source URL to the latest accepted FeedSnapshot. Values are frozen and
replaced as a whole, so a reader holding a snapshot never sees it change.
"""

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from feed_hub.logger import get_logger
from feed_hub.models import FeedSnapshot

logger = get_logger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writer-preferring: once a writer is waiting, new readers queue behind it
    so a steady stream of readers cannot starve a refresh.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


def is_unchanged(cached: Optional[FeedSnapshot], fresh: FeedSnapshot) -> bool:
    """Decide whether a freshly fetched feed can be skipped.

    Only the newest entry's link is compared. Edits to existing entries,
    reordering and deletions are not detected.

    Args:
        cached: Snapshot currently in the cache, if any
        fresh: Snapshot built from the new fetch

    Returns:
        True if the cache should keep `cached`
    """
    if cached is None or cached.newest_link is None or fresh.newest_link is None:
        return False
    return cached.newest_link == fresh.newest_link


class FeedCache:
    """Thread-safe source -> FeedSnapshot store.

    An absent key means the source has not been fetched successfully yet;
    it is never an error.
    """

    def __init__(self):
        self._entries: dict[str, FeedSnapshot] = {}
        self._lock = ReadWriteLock()

    def upsert(self, source: str, snapshot: FeedSnapshot) -> None:
        """Replace the entry for `source` in one step."""
        with self._lock.write_locked():
            self._entries[source] = snapshot

    def replace_if_changed(self, source: str, snapshot: FeedSnapshot) -> bool:
        """Store `snapshot` unless it is unchanged from the cached entry.

        The comparison and the write happen in the same critical section, so
        two refreshes of one source racing each other cannot both write a
        stale decision.

        Returns:
            True if the entry was written
        """
        with self._lock.write_locked():
            if is_unchanged(self._entries.get(source), snapshot):
                return False
            self._entries[source] = snapshot
            return True

    def get(self, source: str) -> tuple[Optional[FeedSnapshot], bool]:
        """Get the current snapshot for `source`.

        Returns:
            Tuple of (snapshot or None, found)
        """
        with self._lock.read_locked():
            snapshot = self._entries.get(source)
        return snapshot, snapshot is not None

    def snapshot_all(self, ordered_sources: Iterable[str]) -> list[FeedSnapshot]:
        """Get the present snapshots in caller order, skipping absent sources.

        The whole list is read under one lock acquisition.
        """
        with self._lock.read_locked():
            return [
                self._entries[source]
                for source in ordered_sources
                if source in self._entries
            ]

    def sources(self) -> list[str]:
        """Sources that currently have an entry."""
        with self._lock.read_locked():
            return list(self._entries)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock.write_locked():
            self._entries.clear()
        logger.debug("Feed cache cleared")

    def __contains__(self, source: object) -> bool:
        with self._lock.read_locked():
            return source in self._entries

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)
