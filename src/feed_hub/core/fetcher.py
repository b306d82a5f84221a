"""
RSS/Atom feed fetcher.

Fetches and parses one source, applies change detection, and stores the
result in the feed cache.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import feedparser
import httpx

from feed_hub.config import FetcherConfig, get_config
from feed_hub.core.cache import FeedCache
from feed_hub.exceptions import FetchError
from feed_hub.logger import get_logger
from feed_hub.models import FeedSnapshot, Item

logger = get_logger(__name__)


@dataclass
class FetchResult:
    """Result of refreshing one source."""

    success: bool
    source: str
    changed: bool = False
    items_count: int = 0
    error: Optional[str] = None
    fetch_time_seconds: float = 0.0
    http_status: Optional[int] = None

    def __post_init__(self):
        """Validate fetch result."""
        if self.success and self.error:
            raise ValueError("Successful fetch cannot have an error")
        if not self.success and not self.error:
            self.error = "Unknown error"
        if not self.success and self.changed:
            raise ValueError("Failed fetch cannot change the cache")


@dataclass
class FetchStats:
    """Statistics for feed fetching operations."""

    total_fetches: int = 0
    successful_fetches: int = 0
    changed_fetches: int = 0
    failed_fetches: int = 0
    total_time_seconds: float = 0.0
    errors_by_type: dict = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_result(self, result: FetchResult) -> None:
        """Add a fetch result to statistics.

        Args:
            result: FetchResult to add
        """
        with self._lock:
            self.total_fetches += 1
            self.total_time_seconds += result.fetch_time_seconds

            if result.success:
                self.successful_fetches += 1
                if result.changed:
                    self.changed_fetches += 1
            else:
                self.failed_fetches += 1
                error_type = result.error.split(":")[0] if result.error else "unknown"
                self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1

    @property
    def unchanged_fetches(self) -> int:
        return self.successful_fetches - self.changed_fetches

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_fetches == 0:
            return 0.0
        return self.successful_fetches / self.total_fetches

    @property
    def avg_time_seconds(self) -> float:
        """Calculate average fetch time."""
        if self.total_fetches == 0:
            return 0.0
        return self.total_time_seconds / self.total_fetches


def build_snapshot(parsed: Any, cycle_timestamp: str) -> FeedSnapshot:
    """Transform a feedparser result into a FeedSnapshot.

    Entries map 1:1 and keep upstream order.

    Args:
        parsed: feedparser result
        cycle_timestamp: Timestamp of the refresh cycle

    Returns:
        New FeedSnapshot
    """
    feed_info = parsed.get("feed", {})
    items = tuple(
        Item(
            link=entry.get("link") or "",
            title=entry.get("title") or "",
            description=entry.get("description") or "",
        )
        for entry in parsed.get("entries", [])
    )
    return FeedSnapshot(
        title=feed_info.get("title") or "",
        link=feed_info.get("link") or "",
        items=items,
        last_update=cycle_timestamp,
    )


class FeedFetcher:
    """Refreshes single sources into a FeedCache."""

    def __init__(
        self,
        cache: FeedCache,
        config: Optional[FetcherConfig] = None,
    ):
        """Initialize feed fetcher.

        Args:
            cache: Cache that receives accepted snapshots
            config: Fetcher settings (defaults to the global config)
        """
        config = config or get_config().fetcher

        self.cache = cache
        self.user_agent = config.user_agent
        self.timeout_seconds = config.timeout_seconds
        self.follow_redirects = config.follow_redirects
        self.max_redirects = config.max_redirects

        self.stats = FetchStats()

    def refresh(self, source: str, cycle_timestamp: str) -> FetchResult:
        """Fetch a source and store it if it changed.

        On failure the cached entry, if any, is left untouched.

        Args:
            source: Feed URL
            cycle_timestamp: Timestamp shared by the refresh cycle

        Returns:
            FetchResult describing what happened
        """
        start_time = time.time()
        http_status = None

        logger.debug(f"Fetching feed: {source}")

        try:
            content, http_status = self._fetch_content(source)
            parsed = self._parse(source, content)
            snapshot = build_snapshot(parsed, cycle_timestamp)

        except httpx.TimeoutException as e:
            error = f"Timeout: {e}"
            logger.warning(f"Timeout fetching {source}")

        except httpx.HTTPStatusError as e:
            http_status = e.response.status_code
            error = f"HTTP {http_status}: {e}"
            logger.warning(f"HTTP error fetching {source}: {http_status}")

        except httpx.RequestError as e:
            error = f"Request error: {e}"
            logger.warning(f"Network error fetching {source}: {e}")

        except FetchError as e:
            error = f"Parse error: {e.reason}"
            logger.warning(f"Error parsing {source}: {e.reason}")

        except OSError as e:
            error = f"IO error: {e}"
            logger.warning(f"Error reading {source}: {e}")

        except Exception as e:
            error = f"Unexpected error: {type(e).__name__}: {e}"
            logger.exception(f"Error fetching {source}: {error}")

        else:
            changed = self.cache.replace_if_changed(source, snapshot)
            fetch_time = time.time() - start_time

            if changed:
                logger.info(
                    f"Updated {snapshot.title or source}: {len(snapshot.items)} items "
                    f"in {fetch_time:.2f}s"
                )
            else:
                logger.debug(f"Feed unchanged: {source}")

            result = FetchResult(
                success=True,
                source=source,
                changed=changed,
                items_count=len(snapshot.items),
                fetch_time_seconds=fetch_time,
                http_status=http_status,
            )
            self.stats.add_result(result)
            return result

        result = FetchResult(
            success=False,
            source=source,
            error=error,
            fetch_time_seconds=time.time() - start_time,
            http_status=http_status,
        )
        self.stats.add_result(result)
        return result

    def _fetch_content(self, url: str) -> tuple[bytes, Optional[int]]:
        """Fetch raw feed bytes.

        Args:
            url: http(s) or file URL

        Returns:
            Tuple of (content, HTTP status or None for files)

        Raises:
            httpx.TimeoutException: On timeout
            httpx.HTTPStatusError: On HTTP error
            httpx.RequestError: On network error
            OSError: If a file source cannot be read
        """
        parsed_url = urlparse(url)
        if parsed_url.scheme == "file":
            with open(url2pathname(parsed_url.path), "rb") as f:
                return f.read(), None

        headers = {"User-Agent": self.user_agent}

        with httpx.Client(
            timeout=self.timeout_seconds,
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
        ) as client:
            response = client.get(url, headers=headers)
            response.raise_for_status()
            return response.content, response.status_code

    def _parse(self, source: str, content: bytes) -> Any:
        """Parse feed bytes with feedparser.

        feedparser tolerates malformed input; a result is only rejected when
        it is malformed and yielded neither a title nor entries.

        Raises:
            FetchError: If the content is not a usable feed
        """
        parsed = feedparser.parse(content)

        if parsed.get("bozo") and not parsed.get("entries") and not parsed.get("feed", {}).get("title"):
            reason = parsed.get("bozo_exception") or "not a feed"
            raise FetchError(source, str(reason))

        return parsed


def create_fetcher(cache: FeedCache, config: Optional[FetcherConfig] = None) -> FeedFetcher:
    """Create a configured FeedFetcher instance.

    Args:
        cache: Shared feed cache
        config: Optional fetcher settings

    Returns:
        Configured FeedFetcher instance
    """
    return FeedFetcher(cache=cache, config=config)
