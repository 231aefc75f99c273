import secrets
from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.mailbox.models import Mailbox
from mailhub.core.modules.session.models import AuthToken, Session
from mailhub.errors import AuthenticationError, InactiveAccountError, NotFoundError
from mailhub.utils import now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Service for managing mailbox sessions."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("auth_token", 1)], unique=True)
        await self._collection.create_index([("mailbox_id", 1)])
        # MongoDB removes sessions once expires_at has passed
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    async def create_session(self, mailbox_id: UUID) -> Session:
        """Create a session that expires after `session_ttl_hours`."""
        created_at = now()
        session = Session(
            mailbox_id=mailbox_id,
            auth_token=secrets.token_urlsafe(32),
            created_at=created_at,
            expires_at=created_at + timedelta(hours=self.core.config.session_ttl_hours),
        )
        await self._collection.insert_one(session.to_mongo())
        logger.debug("session_created", mailbox_id=mailbox_id, expires_at=session.expires_at)
        return session

    async def get_authenticated_mailbox(self, auth_token: AuthToken) -> Mailbox:
        # The TTL monitor runs about once a minute, expiry is checked here as well
        session = Session.from_mongo(await self._collection.find_one({"auth_token": auth_token}))
        if session is None or session.expires_at <= now():
            raise AuthenticationError("Invalid or expired session")

        try:
            return await self.core.services.mailbox.get_active_mailbox(session.mailbox_id)
        except (NotFoundError, InactiveAccountError) as e:
            raise AuthenticationError("Invalid or expired session") from e

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        try:
            await self.get_authenticated_mailbox(auth_token)
        except AuthenticationError:
            return False
        return True

    async def invalidate_session(self, auth_token: AuthToken) -> None:
        """Invalidate a session by removing it from the database."""
        await self._collection.delete_one({"auth_token": auth_token})
