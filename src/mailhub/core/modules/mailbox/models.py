from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mailhub.core.db import MongoModel
from mailhub.utils import now


class Mailbox(MongoModel):
    """Mail account that receives messages and can log in with a magic link.

    Indexed on address - unique.
    """

    address: str  # Lower-cased full address, e.g. alice@bltnm.store
    username: str
    domain: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=now)


class MailboxView(BaseModel):
    """Mailbox information (API representation)."""

    id: UUID = Field(..., description="Mailbox ID")
    address: str = Field(..., description="Email address")
    username: str = Field(..., description="Local part of the address")
    domain: str = Field(..., description="Mail domain")
    is_active: bool = Field(..., description="Whether the mailbox can receive mail and log in")

    @classmethod
    def from_domain(cls, mailbox: Mailbox) -> "MailboxView":
        """Create view model from domain model."""
        return cls(
            id=mailbox.id,
            address=mailbox.address,
            username=mailbox.username,
            domain=mailbox.domain,
            is_active=mailbox.is_active,
        )
