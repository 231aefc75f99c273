import secrets
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.magic_link.models import IssuedMagicLink, MagicLink, MagicLinkLogin
from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.core.modules.mailer.models import OutboundMessage
from mailhub.core.modules.mailer.templates import MAGIC_LINK_SUBJECT, render_magic_link_mail
from mailhub.errors import AlreadyUsedTokenError, ExpiredTokenError, InvalidTokenError, MagicLinkError, TransportError
from mailhub.utils import now

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32  # 256 bits of entropy, 64 hex characters


class MagicLinkService(Service):
    """Issues and redeems single-use magic-link login tokens."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("magic_links")

    async def on_start(self) -> None:
        await self._collection.create_index([("token", 1)], unique=True)
        await self._collection.create_index([("mailbox_id", 1), ("used", 1), ("expires_at", -1)])
        retention_days = self.core.config.magic_link_retention_days
        if retention_days is not None:
            # Expired tokens stay around for a while so redemption can still report "expired"
            await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=retention_days * 24 * 60 * 60)

    def build_url(self, token: str) -> str:
        return f"{self.core.config.frontend_url.rstrip('/')}/magic-login?token={token}"

    async def issue(self, mailbox_id: UUID) -> MagicLink:
        """Return the outstanding valid token for the mailbox, or mint a new one.

        Reusing the outstanding token keeps a link that was already handed out
        working instead of silently replacing it.
        """
        mailbox = await self.core.services.mailbox.get_active_mailbox(mailbox_id)
        current = now()

        existing = MagicLink.from_mongo(
            await self._collection.find_one(
                {"mailbox_id": mailbox.id, "used": False, "expires_at": {"$gt": current}},
                sort=[("expires_at", -1)],
            )
        )
        if existing is not None:
            logger.info("magic_link_reused", mailbox_id=mailbox.id, expires_at=existing.expires_at)
            return existing

        link = MagicLink(
            mailbox_id=mailbox.id,
            token=secrets.token_hex(TOKEN_BYTES),
            expires_at=current + timedelta(days=self.core.config.magic_link_ttl_days),
        )
        await self._collection.insert_one(link.to_mongo())
        logger.info("magic_link_issued", mailbox_id=mailbox.id, expires_at=link.expires_at)
        return link

    async def redeem(self, token: str) -> MagicLinkLogin:
        """Exchange a valid token for a session, marking the token used.

        The used flag is flipped with one conditional update so that of two
        concurrent redemptions only one obtains a session.
        """
        if not token:
            raise InvalidTokenError
        current = now()

        document = await self._collection.find_one_and_update(
            {"token": token, "used": False, "expires_at": {"$gt": current}},
            {"$set": {"used": True, "used_at": current}},
            return_document=ReturnDocument.AFTER,
        )
        link = MagicLink.from_mongo(document)
        if link is None:
            error = await self._redemption_failure(token, current)
            logger.info("magic_link_rejected", reason=type(error).__name__)
            raise error

        mailbox = await self.core.services.mailbox.get_active_mailbox(link.mailbox_id)
        session = await self.core.services.session.create_session(mailbox.id)
        logger.info("magic_link_redeemed", mailbox_id=mailbox.id, session_expires_at=session.expires_at)
        return MagicLinkLogin(
            auth_token=session.auth_token,
            expires_at=session.expires_at,
            mailbox=MailboxView.from_domain(mailbox),
        )

    async def _redemption_failure(self, token: str, at: datetime) -> MagicLinkError:
        """Explain why a token did not match the redeemable condition."""
        link = MagicLink.from_mongo(await self._collection.find_one({"token": token}))
        if link is None:
            return InvalidTokenError()
        if at >= link.expires_at:
            return ExpiredTokenError()
        return AlreadyUsedTokenError()

    async def email_link(self, mailbox_id: UUID) -> IssuedMagicLink:
        """Issue a link and mail it to the mailbox.

        A relay failure is logged and reported through `emailed`, the token
        stays valid and can still be handed out another way.
        """
        link = await self.issue(mailbox_id)
        mailbox = await self.core.services.mailbox.get_mailbox(mailbox_id)
        url = self.build_url(link.token)
        text, html = render_magic_link_mail(mailbox.address, url, link.expires_at)

        emailed = False
        try:
            await self.core.services.mailer.send(
                OutboundMessage(
                    from_address=self.core.config.noreply_address,
                    to_address=mailbox.address,
                    subject=MAGIC_LINK_SUBJECT,
                    text=text,
                    html=html,
                )
            )
            emailed = True
        except TransportError:
            logger.exception("magic_link_email_failed", mailbox_id=mailbox_id)

        return IssuedMagicLink(token=link.token, url=url, expires_at=link.expires_at, emailed=emailed)
