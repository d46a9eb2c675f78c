"""
Socket.io connection lifecycle handlers.

Clients only listen; the server pushes new-track, playlist-created and
playlist-updated events through ``SocketIOServer.broadcast``.
"""

import logging
from typing import Any, Dict

from moodstream.services.socketio.server import SocketIOServer

# Configure logger
logger = logging.getLogger(__name__)


async def handle_connect(sid: str, environ: Dict[str, Any], auth: Any = None) -> None:
    """
    Handle client connection event.

    Args:
        sid: Session ID of the connected client
        environ: ASGI environment dictionary
        auth: Optional authentication payload sent by the client
    """
    logger.info(f"Socket connected: {sid}")


async def handle_disconnect(sid: str, reason: Any = None) -> None:
    """
    Handle client disconnection event.

    Args:
        sid: Session ID of the disconnected client
        reason: Disconnect reason, when the Socket.io version reports one
    """
    logger.info(f"Disconnected: {sid} ({reason})")


def register_handlers(server: SocketIOServer) -> None:
    """Register lifecycle handlers with a Socket.io server."""
    server.on("connect", handle_connect)
    server.on("disconnect", handle_disconnect)
