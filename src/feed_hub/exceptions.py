"""
Exception types for feed hub.
"""

from typing import Optional


class FeedHubError(Exception):
    """Base class for all feed hub errors."""


class ConfigError(FeedHubError):
    """Configuration could not be loaded or validated.

    Raised only at startup; the process must not start when it occurs.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class FetchError(FeedHubError):
    """A feed could not be fetched or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{reason} ({source})")


class StreamClosed(FeedHubError):
    """The stream subscriber went away."""
