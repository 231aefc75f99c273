"""Magic-link token models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mailhub.core.db import MongoModel
from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.utils import now


class MagicLink(MongoModel):
    """Single-use login token bound to a mailbox.

    Valid for redemption iff used is false and now < expires_at. `used` only
    ever flips from false to true.

    Indexed on token - unique, (mailbox_id, used, expires_at), expires_at (TTL with retention).
    """

    mailbox_id: UUID
    token: str
    expires_at: datetime
    used: bool = False
    used_at: datetime | None = None
    created_at: datetime = Field(default_factory=now)

    def is_valid(self, at: datetime) -> bool:
        return not self.used and at < self.expires_at


class IssuedMagicLink(BaseModel):
    """Result of issuing a magic link."""

    token: str = Field(..., description="Opaque login token")
    url: str = Field(..., description="Link to the inbox frontend that redeems the token")
    expires_at: datetime = Field(..., description="Token expiry")
    emailed: bool = Field(False, description="Whether the link was mailed to the mailbox")


class MagicLinkLogin(BaseModel):
    """Session credential obtained by redeeming a magic link."""

    auth_token: str = Field(..., description="Session token")
    expires_at: datetime = Field(..., description="Session expiry, independent of the link expiry")
    mailbox: MailboxView
