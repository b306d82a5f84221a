"""
Access to the FeedHub from within Flask's application context.

The hub is stored in ``app.extensions`` so views never rely on module globals.
"""

from flask import Flask, current_app

from feed_hub.hub import FeedHub

EXTENSION_KEY = "feed_hub"


def init_hub(app: Flask, hub: FeedHub) -> FeedHub:
    """Attach a hub to a Flask application.

    Args:
        app: Flask application instance
        hub: Hub shared by every request

    Returns:
        The attached hub
    """
    app.extensions = getattr(app, "extensions", {})
    app.extensions[EXTENSION_KEY] = hub
    return hub


def get_hub() -> FeedHub:
    """Get the hub of the current application.

    Raises:
        RuntimeError: If called outside an app context or before init_hub
    """
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("FeedHub is not initialized for this application") from None
