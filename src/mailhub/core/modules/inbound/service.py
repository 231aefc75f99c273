import asyncio
from typing import Any

import structlog
from aiosmtpd.smtp import SMTP
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.core.core import Service
from mailhub.core.modules.inbound.handler import InboundHandler

logger = structlog.get_logger(__name__)


class InboundService(Service):
    """SMTP listener for incoming mail.

    The server runs on the application event loop (not in an aiosmtpd
    Controller thread) so stored messages and socket pushes share one loop.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._server: asyncio.Server | None = None

    async def on_start(self) -> None:
        config = self.core.config
        if config.inbound_smtp_port is None:
            logger.info("inbound_smtp_disabled")
            return

        handler = InboundHandler(self.core)
        loop = asyncio.get_running_loop()
        self._server = await loop.create_server(
            lambda: SMTP(handler, hostname=f"mail.{config.mail_domain}", auth_required=False),
            host=config.inbound_smtp_host,
            port=config.inbound_smtp_port,
        )
        logger.info("inbound_smtp_listening", host=config.inbound_smtp_host, port=config.inbound_smtp_port)

    async def on_stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("inbound_smtp_stopped")
