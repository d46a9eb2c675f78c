"""
Socket.io integration package for real-time notifications.

This package provides the realtime channel: server configuration,
FastAPI mounting, connection lifecycle handlers and the broadcast used by
ingestion and playlist services.
"""

from moodstream.services.socketio.server import SocketIOServer
from moodstream.services.socketio.events import register_handlers

__all__ = [
    "SocketIOServer",
    "register_handlers",
]
