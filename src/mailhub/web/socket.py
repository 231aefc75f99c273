"""Socket.IO surface for live inbox clients.

Clients connect, emit `register` with the mailbox id they watch, and receive
`newEmail` events until they disconnect. The Socket.IO sid is the connection
identifier.
"""

from typing import Any

import socketio
import structlog

from mailhub.app import App
from mailhub.config import Config

logger = structlog.get_logger(__name__)


def create_socket_server(app: App, config: Config) -> socketio.AsyncServer:
    sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=config.cors_origins or None)

    @sio.event
    async def connect(sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        logger.debug("socket_connected", connection_id=sid)

    @sio.on("register")
    async def register(sid: str, subscriber: Any) -> None:
        if isinstance(subscriber, int | str) and str(subscriber).strip():
            app.register_connection(sid, str(subscriber).strip())
        else:
            logger.warning("socket_register_invalid", connection_id=sid)

    @sio.event
    async def disconnect(sid: str, *_: Any) -> None:
        app.close_connection(sid)

    app.bind_emitter(sio)
    return sio
