"""
Socket.io server configuration and FastAPI integration.

This module owns the realtime channel: it builds the Socket.io server,
mounts it on the FastAPI application and broadcasts state-change events
to every connected client.
"""

import json
import logging
import os
from typing import Any, Callable, Optional

import socketio
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder

# Configure logger
logger = logging.getLogger(__name__)

# Socket.io configuration from environment variables
# JSON list; when unset the socket server shares the HTTP API's origins
SOCKETIO_CORS_ORIGINS = os.getenv("SOCKETIO_CORS_ORIGINS")
DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]
SOCKETIO_PING_TIMEOUT = int(os.getenv("SOCKETIO_PING_TIMEOUT", "60"))
SOCKETIO_PING_INTERVAL = int(os.getenv("SOCKETIO_PING_INTERVAL", "25"))
SOCKETIO_MAX_HTTP_BUFFER_SIZE = int(
    os.getenv("SOCKETIO_MAX_HTTP_BUFFER_SIZE", "1000000")
)
SOCKETIO_REDIS_URL = os.getenv("SOCKETIO_REDIS_URL")


def configured_cors_origins(default: Optional[list] = None) -> list:
    """Return the origins from SOCKETIO_CORS_ORIGINS, else ``default``."""
    if SOCKETIO_CORS_ORIGINS:
        return json.loads(SOCKETIO_CORS_ORIGINS)
    return list(default if default is not None else DEFAULT_CORS_ORIGINS)


class SocketIOServer:
    """Socket.io server with optional Redis message queue for multi-worker fan-out."""

    def __init__(
        self,
        cors_origins: Optional[list] = None,
        redis_url: Optional[str] = SOCKETIO_REDIS_URL,
    ):
        if cors_origins is None:
            cors_origins = configured_cors_origins()

        # Redis manager lets every worker deliver every broadcast
        self.redis_manager = socketio.AsyncRedisManager(redis_url) if redis_url else None

        self.sio = socketio.AsyncServer(
            async_mode="asgi",
            client_manager=self.redis_manager,
            cors_allowed_origins=cors_origins,
            ping_timeout=SOCKETIO_PING_TIMEOUT,
            ping_interval=SOCKETIO_PING_INTERVAL,
            max_http_buffer_size=SOCKETIO_MAX_HTTP_BUFFER_SIZE,
            logger=False,
            engineio_logger=False,
        )
        self.app = socketio.ASGIApp(self.sio)

        if self.redis_manager:
            logger.info("Socket.IO server initialized with Redis message queue")
        else:
            logger.info("Socket.IO server initialized with in-process client manager")

    def mount_to_fastapi(self, fastapi_app: FastAPI, path: str = "/ws") -> None:
        """Mount the Socket.io server to a FastAPI application.

        Args:
            fastapi_app: The FastAPI application to mount to
            path: The URL path to mount the Socket.io server on
        """
        fastapi_app.mount(path, self.app)
        logger.info(f"Socket.IO server mounted to FastAPI at path: {path}")

    async def shutdown(self) -> None:
        """Release the Redis connection, if any."""
        logger.info("Socket.IO server shutting down")
        if self.redis_manager is not None:
            await self.redis_manager.disconnect()

    def on(self, event: str, handler: Callable) -> None:
        """Register an event handler.

        Args:
            event: Event name to listen for
            handler: Function to call when the event is received
        """
        self.sio.on(event, handler)

    async def broadcast(self, event: str, payload: Any = None) -> None:
        """Emit an event to every connected client.

        Delivery is best effort: no acknowledgement, no retry, and clients
        that connect later never see the event. Failures are logged and
        never raised. With a Redis manager the publish runs as a background
        task so the caller does not wait on Redis.

        Args:
            event: Event name to emit
            payload: JSON-compatible data; datetimes are serialized to ISO strings
        """
        try:
            data = jsonable_encoder(payload)
        except Exception as e:
            logger.warning(f"Could not encode socket {event} payload: {e}")
            return

        if self.redis_manager is not None:
            self.sio.start_background_task(self._emit, event, data)
        else:
            await self._emit(event, data)

    async def _emit(self, event: str, data: Any) -> None:
        try:
            await self.sio.emit(event, data)
        except Exception as e:
            logger.warning(f"Could not emit socket {event}: {e}")
