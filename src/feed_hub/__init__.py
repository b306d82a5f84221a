"""
Feed Hub - Live RSS/Atom dashboard backend.

This package keeps an in-memory cache of a fixed set of feeds, refreshes it
in the background, and serves the cached snapshots over JSON and WebSocket.
"""

__version__ = "0.1.0"
