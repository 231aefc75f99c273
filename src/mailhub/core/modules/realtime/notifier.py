"""Best-effort push of newly stored messages to live inbox clients."""

from typing import Any, Protocol

import structlog

from mailhub.core.modules.realtime.registry import ConnectionRegistry
from mailhub.errors import DeliveryEmitError

logger = structlog.get_logger(__name__)

NEW_EMAIL_EVENT = "newEmail"


class EventEmitter(Protocol):
    """Anything that can push an event to one connection (socketio.AsyncServer fits)."""

    async def emit(self, event: str, data: Any = None, to: str | None = None) -> None: ...


class DeliveryNotifier:
    """Fans a message out to every live connection of a subscriber.

    At-most-once and best effort: offline subscribers are skipped silently and
    pick the message up from the message store on their next fetch. The fan-out
    is sequential inside the event loop with no queue, which suits interactive
    inbox traffic; bulk broadcast would need batching.
    """

    def __init__(self, registry: ConnectionRegistry, emitter: EventEmitter) -> None:
        self._registry = registry
        self._emitter = emitter

    async def notify(self, subscriber: str, message: dict[str, Any]) -> int:
        """Push `message` as a newEmail event. Returns the number of connections reached."""
        connection_ids = self._registry.connections_for(subscriber)
        if not connection_ids:
            logger.debug("notify_no_live_connections", subscriber=subscriber)
            return 0

        delivered = 0
        for connection_id in connection_ids:
            try:
                await self._emit(connection_id, message)
            except DeliveryEmitError:
                logger.exception("notify_emit_failed", subscriber=subscriber, connection_id=connection_id)
                continue
            delivered += 1

        logger.info("notify_completed", subscriber=subscriber, connections=len(connection_ids), delivered=delivered)
        return delivered

    async def _emit(self, connection_id: str, message: dict[str, Any]) -> None:
        # The connection may have closed while earlier emits were awaited
        if connection_id not in self._registry:
            raise DeliveryEmitError(connection_id, ConnectionError("connection closed"))
        try:
            await self._emitter.emit(NEW_EMAIL_EVENT, message, to=connection_id)
        except Exception as e:
            raise DeliveryEmitError(connection_id, e) from e
