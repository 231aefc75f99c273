from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

import structlog

from mailhub.config import Config
from mailhub.core.core import Core
from mailhub.core.modules.magic_link.models import IssuedMagicLink, MagicLinkLogin
from mailhub.core.modules.mailbox.models import MailboxView
from mailhub.core.modules.mailer.models import DeliveryReceipt
from mailhub.core.modules.message.models import MessageRecord
from mailhub.core.modules.realtime.notifier import EventEmitter
from mailhub.core.modules.session.models import AuthToken

logger = structlog.get_logger(__name__)

SIMULATED_SUBJECT = "New Email Notification"
SIMULATED_BODY = "This is a simulated new email arriving in real-time."


class App:
    """Facade for all application operations, validates access before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Sessions ===
    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        return await self._core.services.session.is_auth_token_valid(auth_token)

    async def redeem_magic_link(self, token: str) -> MagicLinkLogin:
        """Log in with a magic link (public)."""
        return await self._core.services.magic_link.redeem(token)

    async def logout(self, auth_token: AuthToken) -> None:
        await self._core.services.access.ensure_authenticated(auth_token)
        await self._core.services.session.invalidate_session(auth_token)

    async def get_current_mailbox(self, auth_token: AuthToken) -> MailboxView:
        mailbox = await self._core.services.access.ensure_authenticated(auth_token)
        return MailboxView.from_domain(mailbox)

    # === Messages ===
    async def get_messages(self, auth_token: AuthToken) -> list[MessageRecord]:
        mailbox = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.message.list_messages(mailbox.id)

    async def get_message(self, auth_token: AuthToken, record_id: UUID) -> MessageRecord:
        """Open a message of the current mailbox and mark it read."""
        mailbox = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.message.get_message(mailbox.id, record_id)

    async def simulate_message(self, auth_token: AuthToken) -> MessageRecord:
        """Store a demo message for the current mailbox and push it to its live clients."""
        mailbox = await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.message.deliver(
            mailbox,
            from_address=f"demo@{self._core.config.mail_domain}",
            subject=SIMULATED_SUBJECT,
            body=SIMULATED_BODY,
        )

    # === Administration ===
    async def issue_magic_link(self, api_key: str | None, mailbox_id: UUID, send_email: bool = False) -> IssuedMagicLink:
        """Issue a magic link for a mailbox (admin only), optionally mailing it."""
        self._core.services.access.ensure_admin(api_key)
        if send_email:
            return await self._core.services.magic_link.email_link(mailbox_id)
        link = await self._core.services.magic_link.issue(mailbox_id)
        return IssuedMagicLink(
            token=link.token,
            url=self._core.services.magic_link.build_url(link.token),
            expires_at=link.expires_at,
        )

    async def get_all_mailboxes(self, api_key: str | None) -> list[MailboxView]:
        self._core.services.access.ensure_admin(api_key)
        mailboxes = await self._core.services.mailbox.get_all_mailboxes()
        return [MailboxView.from_domain(mailbox) for mailbox in mailboxes]

    async def create_mailbox(self, api_key: str | None, address: str) -> MailboxView:
        self._core.services.access.ensure_admin(api_key)
        mailbox = await self._core.services.mailbox.create_mailbox(address)
        return MailboxView.from_domain(mailbox)

    async def set_mailbox_active(self, api_key: str | None, mailbox_id: UUID, is_active: bool) -> MailboxView:
        self._core.services.access.ensure_admin(api_key)
        mailbox = await self._core.services.mailbox.set_active(mailbox_id, is_active)
        return MailboxView.from_domain(mailbox)

    async def send_test_email(self, api_key: str | None, to_address: str) -> DeliveryReceipt:
        """Send a DKIM-signed test message through the relay (admin only)."""
        self._core.services.access.ensure_admin(api_key)
        return await self._core.services.mailer.send_test_email(to_address)

    # === Realtime ===
    def bind_emitter(self, emitter: EventEmitter) -> None:
        self._core.services.realtime.bind_emitter(emitter)

    def register_connection(self, connection_id: str, subscriber: str) -> None:
        self._core.services.realtime.register(connection_id, subscriber)

    def close_connection(self, connection_id: str) -> None:
        self._core.services.realtime.disconnect(connection_id)
