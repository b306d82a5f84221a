"""
Flask application for the feed hub dashboard.
"""

from typing import Optional

from flask import Flask
from flask_sock import Sock

from feed_hub.config import Config, get_config
from feed_hub.core.broadcaster import WebSocketSubscriber
from feed_hub.hub import FeedHub
from feed_hub.logger import get_logger
from feed_hub.web.blueprints import FeedBlueprint, SystemBlueprint
from feed_hub.web.hub_manager import get_hub, init_hub
from feed_hub.web.serializers import api_response

logger = get_logger(__name__)


def stream_session(ws) -> int:
    """Run one stream session on an open WebSocket connection.

    Returns when the session ends; flask-sock then closes the socket.

    Returns:
        Number of messages sent
    """
    broadcaster = get_hub().broadcaster
    logger.info("Stream session opened")
    sent = broadcaster.run(WebSocketSubscriber(ws))
    logger.info(f"Stream session closed after {sent} messages")
    return sent


def create_app(
    config: Optional[Config] = None,
    hub: Optional[FeedHub] = None,
) -> Flask:
    """Create and configure Flask application.

    The hub is not started here; the caller decides when background
    refreshing begins.

    Args:
        config: Application config (defaults to the global config)
        hub: Prebuilt hub to serve (built from config when omitted)

    Returns:
        Configured Flask application
    """
    config = config or (hub.config if hub else get_config())
    hub = hub or FeedHub(config)

    app = Flask(
        __name__,
        template_folder="templates",
    )
    app.config["DEBUG"] = config.web.debug
    app.config["SOCK_SERVER_OPTIONS"] = {"ping_interval": 25}

    init_hub(app, hub)

    app.register_blueprint(FeedBlueprint().blueprint)
    app.register_blueprint(SystemBlueprint().blueprint)

    # ========================================================================
    # Streaming
    # ========================================================================

    sock = Sock(app)

    @sock.route("/ws")
    def stream(ws):
        """Push cached snapshots to one WebSocket client."""
        stream_session(ws)

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.errorhandler(404)
    def not_found(e):
        """Handle 404 errors."""
        return api_response(success=False, error="Not found", status=404)

    @app.errorhandler(500)
    def server_error(e):
        """Handle 500 errors."""
        logger.error(f"Server error: {e}")
        return api_response(success=False, error="Internal server error", status=500)

    logger.info(f"Web app created with {len(hub.sources)} feed sources")

    return app
