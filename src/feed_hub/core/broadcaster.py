"""
Stream broadcaster pushing cached snapshots to one subscriber per session.

Each pass sends one JSON message per cached source in configured order.
With a zero push interval a session is a single pass; otherwise passes
repeat until the peer goes away or the broadcaster stops.
"""

import threading
import time
from datetime import timedelta
from typing import Protocol, Sequence

from simple_websocket import ConnectionClosed

from feed_hub.core.cache import FeedCache
from feed_hub.exceptions import StreamClosed
from feed_hub.logger import get_logger

logger = get_logger(__name__)


class Subscriber(Protocol):
    """Receiving end of a stream session."""

    def send(self, text: str) -> None:
        """Deliver one message; raises on failure."""
        ...

    def wait(self, seconds: float, stop: threading.Event) -> bool:
        """Block up to `seconds`.

        Returns:
            False if the session should end (peer gone or `stop` set)
        """
        ...


class WebSocketSubscriber:
    """Subscriber backed by a flask-sock connection.

    Inbound messages are read and dropped while waiting, which is also how a
    disconnect is noticed before the next send.
    """

    def __init__(self, ws, poll_seconds: float = 1.0):
        self.ws = ws
        self.poll_seconds = poll_seconds

    def send(self, text: str) -> None:
        try:
            self.ws.send(text)
        except ConnectionClosed as e:
            raise StreamClosed(f"connection closed: {e}") from e

    def wait(self, seconds: float, stop: threading.Event) -> bool:
        deadline = time.monotonic() + seconds
        while not stop.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            try:
                self.ws.receive(timeout=min(remaining, self.poll_seconds))
            except ConnectionClosed:
                return False
        return False


class StreamBroadcaster:
    """Runs stream sessions against the shared feed cache."""

    def __init__(self, cache: FeedCache, sources: Sequence[str], push_interval: timedelta):
        """Initialize broadcaster.

        Args:
            cache: Shared feed cache
            sources: Configured feed URLs, in order
            push_interval: Pause between passes; zero means a single pass
        """
        if push_interval < timedelta(0):
            raise ValueError("Push interval cannot be negative")

        self.cache = cache
        self.sources = list(sources)
        self.push_interval = push_interval

        self._stop = threading.Event()
        self._sessions_lock = threading.Lock()
        self._active_sessions = 0

    @property
    def active_sessions(self) -> int:
        with self._sessions_lock:
            return self._active_sessions

    def stop(self) -> None:
        """End every session at its next wait."""
        self._stop.set()

    def run(self, subscriber: Subscriber) -> int:
        """Stream snapshots to `subscriber` until the session ends.

        Returns:
            Number of messages sent
        """
        with self._sessions_lock:
            self._active_sessions += 1
        try:
            return self._run(subscriber)
        finally:
            with self._sessions_lock:
                self._active_sessions -= 1

    def _run(self, subscriber: Subscriber) -> int:
        sent = 0
        interval_seconds = self.push_interval.total_seconds()

        while True:
            for source in self.sources:
                snapshot, found = self.cache.get(source)
                if not found:
                    logger.debug(f"No data yet for {source}, skipping")
                    continue

                try:
                    subscriber.send(snapshot.to_json())
                except Exception as e:
                    logger.info(f"Stream ended after {sent} messages: {e}")
                    return sent
                sent += 1

            if interval_seconds == 0:
                logger.debug(f"Single pass complete, {sent} messages sent")
                return sent

            if not subscriber.wait(interval_seconds, self._stop):
                logger.info(f"Stream closed after {sent} messages")
                return sent
