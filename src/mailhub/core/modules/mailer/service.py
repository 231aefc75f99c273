import asyncio
from email import policy
from email.headerregistry import HeaderRegistry, UnstructuredHeader
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any

import aiosmtplib
import structlog
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.mailer.models import DeliveryReceipt, OutboundMessage
from mailhub.core.modules.mailer.templates import TEST_MAIL_SUBJECT, TEST_MAIL_TEXT
from mailhub.errors import TransportError
from mailhub.utils import now, rfc1123_date

logger = structlog.get_logger(__name__)

# Date goes out verbatim and headers are never folded, so the wire matches the signed values
_header_registry = HeaderRegistry()
_header_registry.map_to_type("date", UnstructuredHeader)
MAIL_POLICY = policy.default.clone(header_factory=_header_registry, max_line_length=None)


class MailerService(Service):
    """DKIM-signs outbound mail and submits it over one long-lived relay connection.

    The connection is opened at startup and shared by all send calls;
    aiosmtplib serializes commands on it. Nothing is retried here, callers
    decide whether a failed send matters to them.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._client: aiosmtplib.SMTP | None = None
        self._connect_lock = asyncio.Lock()

    async def on_start(self) -> None:
        config = self.core.config
        if not config.smtp_host:
            logger.warning("mailer_relay_not_configured")
            return

        self._client = self._create_client()
        try:
            await self._ensure_connected()
        except TransportError:
            # The relay may come up later, sends reconnect on demand
            logger.exception("mailer_initial_connect_failed", host=config.smtp_host, port=config.smtp_port)

    async def on_stop(self) -> None:
        if self._client is not None and self._client.is_connected:
            try:
                await self._client.quit()
            except aiosmtplib.SMTPException:
                self._client.close()
        self._client = None

    def _create_client(self) -> aiosmtplib.SMTP:
        config = self.core.config
        return aiosmtplib.SMTP(
            hostname=config.smtp_host,
            port=config.smtp_port,
            use_tls=config.smtp_use_tls,
            validate_certs=config.smtp_validate_certs,
            username=config.smtp_username or config.noreply_address,
            password=config.smtp_password,
        )

    async def _ensure_connected(self) -> aiosmtplib.SMTP:
        if self._client is None:
            raise TransportError("Outbound mail relay is not configured")

        async with self._connect_lock:
            if not self._client.is_connected:
                try:
                    # Logs in as part of connect when credentials are set
                    await self._client.connect()
                except aiosmtplib.SMTPException as e:
                    raise TransportError(f"Could not connect to mail relay: {e}") from e
                logger.info("mailer_connected", host=self.core.config.smtp_host, port=self.core.config.smtp_port)
        return self._client

    def compose(self, outbound: OutboundMessage) -> EmailMessage:
        """Build the MIME message with Date and DKIM-Signature headers."""
        headers = {
            "from": outbound.from_address,
            "to": outbound.to_address,
            "subject": outbound.subject,
            "date": rfc1123_date(now()),
        }
        signature = self.core.dkim_signer.sign(headers, outbound.html or outbound.text or "")

        message = EmailMessage(policy=MAIL_POLICY)
        message["From"] = headers["from"]
        message["To"] = headers["to"]
        message["Subject"] = headers["subject"]
        message["Date"] = headers["date"]
        message["Message-ID"] = make_msgid(domain=self.core.config.mail_domain)
        message["DKIM-Signature"] = signature

        message.set_content(outbound.text or "")
        if outbound.html:
            message.add_alternative(outbound.html, subtype="html")
        return message

    async def send(self, outbound: OutboundMessage) -> DeliveryReceipt:
        """Sign and submit one message. Raises TransportError if the relay rejects it."""
        message = self.compose(outbound)
        client = await self._ensure_connected()
        try:
            errors, response = await client.send_message(message)
        except aiosmtplib.SMTPException as e:
            logger.warning("mail_send_failed", to=outbound.to_address, subject=outbound.subject, error=str(e))
            raise TransportError(str(e)) from e

        rejected = {recipient: str(reply) for recipient, reply in errors.items()}
        receipt = DeliveryReceipt(
            message_id=str(message["Message-ID"]),
            accepted=[outbound.to_address] if outbound.to_address not in rejected else [],
            rejected=rejected,
            response=response,
        )
        logger.info("mail_sent", to=outbound.to_address, message_id=receipt.message_id, rejected=list(rejected))
        return receipt

    async def send_test_email(self, to_address: str) -> DeliveryReceipt:
        """Send a signed test message from the noreply address."""
        return await self.send(
            OutboundMessage(
                from_address=self.core.config.noreply_address,
                to_address=to_address,
                subject=TEST_MAIL_SUBJECT,
                text=TEST_MAIL_TEXT,
            )
        )
