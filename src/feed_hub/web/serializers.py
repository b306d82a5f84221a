"""
Serializer functions for API responses.
"""

from typing import Any

from feed_hub.models import FeedSnapshot


def snapshot_to_dict(snapshot: FeedSnapshot) -> dict:
    """Convert a FeedSnapshot to a JSON-ready dictionary."""
    return snapshot.model_dump(mode="json")


def api_response(
    success: bool = True,
    data: Any = None,
    message: str = None,
    error: str = None,
    status: int = 200
) -> tuple:
    """Standard API response format.

    Args:
        success: Whether the request was successful
        data: Response data
        message: Success message
        error: Error message
        status: HTTP status code

    Returns:
        Flask response with JSON data
    """
    from flask import jsonify

    response_data = {
        "success": success,
        "data": data,
        "message": message,
        "error": error,
    }
    return jsonify(response_data), status
