"""
Run the feed hub server.

    python -m feed_hub --config config/config.yaml
"""

import argparse
import sys
from typing import Optional

from feed_hub.config import reload_config
from feed_hub.exceptions import ConfigError
from feed_hub.hub import FeedHub
from feed_hub.logger import get_logger, setup_logger

logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    """Load config, start background refresh and serve until interrupted."""
    parser = argparse.ArgumentParser(description="Serve cached RSS/Atom feeds over HTTP and WebSocket")
    parser.add_argument("--config", "-c", help="Path to YAML/JSON config file (default: config/config.yaml)")
    parser.add_argument("--host", help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, help="Bind port (overrides config)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    args = parser.parse_args(argv)

    try:
        config = reload_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logger(log_config=config.logging)

    from feed_hub.web.app import create_app

    hub = FeedHub(config)
    app = create_app(hub=hub)

    host = args.host or config.web.host
    port = args.port or config.web.port

    hub.start()
    try:
        logger.info(f"Serving on http://{host}:{port}")
        # The reloader would start a second scheduler in the child process
        app.run(host=host, port=port, debug=args.debug or config.web.debug, use_reloader=False, threaded=True)
    finally:
        hub.stop(wait=False)

    return 0


if __name__ == "__main__":
    sys.exit(main())
