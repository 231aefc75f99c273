"""Session management models."""

from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import Field

from mailhub.core.db import MongoModel
from mailhub.utils import now

AuthToken = NewType("AuthToken", str)


class Session(MongoModel):
    """Mailbox login session.

    Indexed on auth_token - unique, mailbox_id, expires_at (TTL).
    """

    mailbox_id: UUID
    auth_token: str
    created_at: datetime = Field(default_factory=now)
    expires_at: datetime
