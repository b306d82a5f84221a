"""API blueprints for the feed hub web app."""

from feed_hub.web.blueprints.feeds import FeedBlueprint
from feed_hub.web.blueprints.system import SystemBlueprint

__all__ = [
    "FeedBlueprint",
    "SystemBlueprint",
]
