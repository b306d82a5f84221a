"""
System API blueprint.

Runtime status and manual refresh.
"""

from flask import Blueprint

from feed_hub.logger import get_logger
from feed_hub.web.hub_manager import get_hub
from feed_hub.web.serializers import api_response

logger = get_logger(__name__)


class SystemBlueprint:
    """Blueprint for status and control operations."""

    def __init__(self):
        self.blueprint = Blueprint("system", __name__, url_prefix="/api")
        self._register_routes()

    def _register_routes(self):
        """Register all system routes."""
        self.blueprint.add_url_rule("/status", view_func=self._status, methods=["GET"])
        self.blueprint.add_url_rule("/refresh", view_func=self._refresh, methods=["POST"])

    def _status(self):
        """Get runtime status.

        Returns:
            API response with scheduler, fetcher and cache status
        """
        return api_response(success=True, data=get_hub().status())

    def _refresh(self):
        """Start a refresh cycle now, outside the regular interval.

        Returns:
            API response with the cycle timestamp
        """
        scheduler = get_hub().scheduler

        if not scheduler.is_running():
            return api_response(success=False, error="Scheduler is not running", status=409)

        cycle_timestamp = scheduler.tick()
        logger.info(f"Manual refresh cycle {cycle_timestamp} triggered via API")
        return api_response(
            success=True,
            data={"cycle_timestamp": cycle_timestamp},
            message="Refresh started",
        )
