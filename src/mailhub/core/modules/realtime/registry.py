"""Process-local map of live socket connections to the mailbox they watch."""

import structlog

logger = structlog.get_logger(__name__)


class ConnectionRegistry:
    """Tracks which subscriber identity each live connection registered for.

    A connection has at most one subscriber identity; a subscriber may have any
    number of connections (tabs, devices). Nothing is persisted: after a restart
    clients must register again. Mutations happen on the event loop thread only,
    so no locking is needed.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, str] = {}

    def register(self, connection_id: str, subscriber: str) -> None:
        previous = self._subscribers.get(connection_id)
        self._subscribers[connection_id] = subscriber
        if previous is not None and previous != subscriber:
            logger.info("connection_reregistered", connection_id=connection_id, previous=previous, subscriber=subscriber)
        else:
            logger.info("connection_registered", connection_id=connection_id, subscriber=subscriber)

    def unregister(self, connection_id: str) -> str | None:
        """Forget a closed connection. Returns the subscriber it was registered for, if any."""
        subscriber = self._subscribers.pop(connection_id, None)
        logger.info("connection_closed", connection_id=connection_id, subscriber=subscriber)
        return subscriber

    def subscriber_of(self, connection_id: str) -> str | None:
        return self._subscribers.get(connection_id)

    def connections_for(self, subscriber: str) -> list[str]:
        """Snapshot of live connection ids registered for the subscriber."""
        return [connection_id for connection_id, owner in self._subscribers.items() if owner == subscriber]

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._subscribers
