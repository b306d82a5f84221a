"""Data models for feed hub."""

from feed_hub.models.feed import FeedSnapshot, Item

__all__ = [
    "FeedSnapshot",
    "Item",
]
