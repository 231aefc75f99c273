from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import Field

from mailhub.core.db import MongoModel
from mailhub.utils import now

NO_SUBJECT = "(No subject)"


class Folder(StrEnum):
    INBOX = "inbox"


class MessageRecord(MongoModel):
    """Received message stored for a mailbox.

    Indexed on (mailbox_id, received_at).
    """

    mailbox_id: UUID = Field(..., description="Mailbox the message was delivered to")
    from_address: str = Field("", description="Sender as written in the From header")
    to_address: str = Field(..., description="Recipient address")
    subject: str = Field(NO_SUBJECT, description="Subject line")
    body: str = Field("", description="Plain text body, or HTML when no text part exists")
    message_id: str | None = Field(None, description="Message-ID header")
    is_read: bool = False
    is_starred: bool = False
    folder: Folder = Folder.INBOX
    received_at: datetime = Field(default_factory=now)
