"""Web layer for feed hub."""

from feed_hub.web.app import create_app

__all__ = ["create_app"]
