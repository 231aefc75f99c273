from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.mailbox.models import Mailbox
from mailhub.core.modules.mailbox.validators import normalize_address, split_address
from mailhub.errors import InactiveAccountError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class MailboxService(Service):
    """Looks up and maintains mailbox records."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("mailboxes")

    async def on_start(self) -> None:
        await self._collection.create_index([("address", 1)], unique=True)
        logger.debug("mailbox_service_started")

    async def get_mailbox(self, mailbox_id: UUID) -> Mailbox:
        """Get mailbox by ID. Raises NotFoundError if it does not exist."""
        mailbox = Mailbox.from_mongo(await self._collection.find_one({"_id": mailbox_id}))
        if mailbox is None:
            raise NotFoundError(f"Mailbox '{mailbox_id}' not found")
        return mailbox

    async def get_active_mailbox(self, mailbox_id: UUID) -> Mailbox:
        """Get mailbox by ID, rejecting deactivated accounts."""
        mailbox = await self.get_mailbox(mailbox_id)
        if not mailbox.is_active:
            raise InactiveAccountError
        return mailbox

    async def find_by_address(self, address: str) -> Mailbox | None:
        return Mailbox.from_mongo(await self._collection.find_one({"address": address.strip().lower()}))

    async def get_all_mailboxes(self) -> list[Mailbox]:
        return await Mailbox.list_cursor(self._collection.find().sort("address", 1))

    async def create_mailbox(self, address: str) -> Mailbox:
        """Create an active mailbox on the local mail domain."""
        normalized = normalize_address(address)
        username, domain = split_address(normalized)
        if domain != self.core.config.mail_domain:
            raise ValidationError(f"Mailboxes must belong to the '{self.core.config.mail_domain}' domain")
        if await self.find_by_address(normalized) is not None:
            raise ValidationError(f"Mailbox '{normalized}' already exists")

        mailbox = Mailbox(address=normalized, username=username, domain=domain)
        await self._collection.insert_one(mailbox.to_mongo())
        logger.info("mailbox_created", mailbox_id=mailbox.id, address=normalized)
        return mailbox

    async def set_active(self, mailbox_id: UUID, is_active: bool) -> Mailbox:
        """Activate or deactivate a mailbox."""
        result = await self._collection.update_one({"_id": mailbox_id}, {"$set": {"is_active": is_active}})
        if result.matched_count == 0:
            raise NotFoundError(f"Mailbox '{mailbox_id}' not found")
        logger.info("mailbox_activation_changed", mailbox_id=mailbox_id, is_active=is_active)
        return await self.get_mailbox(mailbox_id)
