"""
Feed query blueprint.

Serves the cached snapshots as JSON and as the dashboard page.
"""

from flask import Blueprint, jsonify, render_template

from feed_hub.web.hub_manager import get_hub
from feed_hub.web.serializers import snapshot_to_dict


class FeedBlueprint:
    """Blueprint for reading cached feeds."""

    def __init__(self):
        self.blueprint = Blueprint("feeds", __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all feed routes."""
        self.blueprint.add_url_rule("/", view_func=self._index, methods=["GET"])
        self.blueprint.add_url_rule("/feeds", view_func=self._list, methods=["GET"])

    def _list(self):
        """List cached feeds in configured order.

        Sources without data are omitted.

        Returns:
            JSON array of snapshots
        """
        feeds = get_hub().reader.list_feeds()
        return jsonify([snapshot_to_dict(feed) for feed in feeds])

    def _index(self):
        """Dashboard page."""
        reader = get_hub().reader
        return render_template(
            "index.html",
            keywords=reader.keywords(),
            feeds=reader.list_feeds(),
        )
