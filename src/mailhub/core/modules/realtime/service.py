from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.realtime.notifier import DeliveryNotifier, EventEmitter
from mailhub.core.modules.realtime.registry import ConnectionRegistry

logger = structlog.get_logger(__name__)


class RealtimeService(Service):
    """Owns the process-wide connection registry and the delivery notifier.

    The registry only knows connections of this process. Running several
    instances needs a shared pub/sub layer in front of the per-process fan-out.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self.registry = ConnectionRegistry()
        self._notifier: DeliveryNotifier | None = None

    def bind_emitter(self, emitter: EventEmitter) -> None:
        """Attach the socket server that delivers events to clients."""
        self._notifier = DeliveryNotifier(self.registry, emitter)

    def register(self, connection_id: str, subscriber: str) -> None:
        self.registry.register(connection_id, subscriber)

    def disconnect(self, connection_id: str) -> None:
        self.registry.unregister(connection_id)

    async def notify(self, subscriber: str, message: dict[str, Any]) -> int:
        if self._notifier is None:
            logger.warning("notify_without_emitter", subscriber=subscriber)
            return 0
        return await self._notifier.notify(subscriber, message)
