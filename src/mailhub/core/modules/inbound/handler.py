"""aiosmtpd handler accepting mail for local mailboxes."""

from __future__ import annotations

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import TYPE_CHECKING, Any

import structlog
from aiosmtpd.smtp import SMTP, Envelope, Session
from pymongo.errors import PyMongoError

if TYPE_CHECKING:
    from mailhub.core.core import Core

logger = structlog.get_logger(__name__)


def extract_body(message: EmailMessage) -> str:
    """Plain text body, falling back to the HTML part."""
    part = message.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    try:
        return str(part.get_content())
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True)
        return payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else ""


class InboundHandler:
    """Validates recipients at RCPT time and stores accepted mail at DATA time.

    Only addresses on the local mail domain that belong to an active mailbox are
    accepted; everything else is refused so the server never relays.
    """

    def __init__(self, core: Core) -> None:
        self._core = core

    async def handle_RCPT(  # noqa: N802
        self, server: SMTP, session: Session, envelope: Envelope, address: str, rcpt_options: list[str]
    ) -> str:
        normalized = address.strip().lower()
        domain = normalized.rpartition("@")[2]
        if domain != self._core.config.mail_domain:
            logger.info("inbound_relay_denied", address=normalized, peer=session.peer)
            return "550 5.7.1 Relay denied"

        mailbox = await self._core.services.mailbox.find_by_address(normalized)
        if mailbox is None or not mailbox.is_active:
            logger.info("inbound_unknown_recipient", address=normalized)
            return "550 5.1.1 Unknown recipient"

        envelope.rcpt_tos.append(normalized)
        envelope.rcpt_options.extend(rcpt_options)
        return "250 OK"

    async def handle_DATA(self, server: SMTP, session: Session, envelope: Envelope) -> str:  # noqa: N802
        content: Any = envelope.original_content or envelope.content or b""
        if isinstance(content, str):
            content = content.encode("utf-8")
        parsed = BytesParser(policy=policy.default).parsebytes(content)

        from_address = str(parsed.get("From", "")) or (envelope.mail_from or "")
        subject = parsed.get("Subject")
        body = extract_body(parsed)
        message_id = parsed.get("Message-ID")

        stored = 0
        for address in envelope.rcpt_tos:
            mailbox = await self._core.services.mailbox.find_by_address(address)
            if mailbox is None:
                logger.warning("inbound_recipient_vanished", address=address)
                continue
            try:
                await self._core.services.message.deliver(
                    mailbox,
                    from_address=from_address,
                    subject=str(subject) if subject is not None else None,
                    body=body,
                    message_id=str(message_id) if message_id is not None else None,
                )
            except PyMongoError:
                logger.exception("inbound_store_failed", address=address, from_address=from_address)
                continue
            stored += 1

        if envelope.rcpt_tos and stored == 0:
            return "451 4.3.0 Temporary failure, try again later"
        logger.info("inbound_message_accepted", from_address=from_address, recipients=len(envelope.rcpt_tos), stored=stored)
        return "250 OK"
