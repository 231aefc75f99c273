from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.mailbox.models import Mailbox
from mailhub.core.modules.message.models import NO_SUBJECT, MessageRecord
from mailhub.errors import NotFoundError

logger = structlog.get_logger(__name__)


class MessageService(Service):
    """Message store for received mail and the hand-off to live delivery."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("messages")

    async def on_start(self) -> None:
        await self._collection.create_index([("mailbox_id", 1), ("received_at", -1)])

    async def deliver(
        self,
        mailbox: Mailbox,
        from_address: str,
        subject: str | None,
        body: str,
        message_id: str | None = None,
    ) -> MessageRecord:
        """Persist a message for the mailbox, then push it to live clients.

        The store is the durable path. The push is a latency optimization and
        never fails the delivery.
        """
        record = MessageRecord(
            mailbox_id=mailbox.id,
            from_address=from_address,
            to_address=mailbox.address,
            subject=subject.strip() if subject and subject.strip() else NO_SUBJECT,
            body=body,
            message_id=message_id,
        )
        await self._collection.insert_one(record.to_mongo())
        logger.info("message_stored", mailbox_id=mailbox.id, record_id=record.id, from_address=from_address)

        await self.core.services.realtime.notify(str(mailbox.id), record.to_payload())
        return record

    async def list_messages(self, mailbox_id: UUID) -> list[MessageRecord]:
        """Messages of a mailbox, newest first."""
        return await MessageRecord.list_cursor(self._collection.find({"mailbox_id": mailbox_id}).sort("received_at", -1))

    async def get_message(self, mailbox_id: UUID, record_id: UUID) -> MessageRecord:
        """Open a message of the mailbox and mark it read."""
        record = MessageRecord.from_mongo(await self._collection.find_one({"_id": record_id, "mailbox_id": mailbox_id}))
        if record is None:
            raise NotFoundError(f"Message '{record_id}' not found")

        if not record.is_read:
            await self._collection.update_one({"_id": record_id}, {"$set": {"is_read": True}})
            record.is_read = True
        return record
