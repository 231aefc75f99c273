from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from mailhub.config import Config
from mailhub.core.modules.dkim.signer import DkimSigner

logger = structlog.get_logger(__name__)


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that discovers and initializes services."""

    from mailhub.core.modules.access.service import AccessService  # noqa: PLC0415
    from mailhub.core.modules.inbound.service import InboundService  # noqa: PLC0415
    from mailhub.core.modules.magic_link.service import MagicLinkService  # noqa: PLC0415
    from mailhub.core.modules.mailbox.service import MailboxService  # noqa: PLC0415
    from mailhub.core.modules.mailer.service import MailerService  # noqa: PLC0415
    from mailhub.core.modules.message.service import MessageService  # noqa: PLC0415
    from mailhub.core.modules.realtime.service import RealtimeService  # noqa: PLC0415
    from mailhub.core.modules.session.service import SessionService  # noqa: PLC0415

    mailbox: MailboxService
    session: SessionService
    access: AccessService
    realtime: RealtimeService
    message: MessageService
    mailer: MailerService
    magic_link: MagicLinkService
    inbound: InboundService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._services: list[Service] = []
        self._database = database

        # (attribute_name, module_path, class_name)
        # Order matters: the inbound listener starts last and stops first
        service_configs = [
            ("mailbox", "mailhub.core.modules.mailbox.service", "MailboxService"),
            ("session", "mailhub.core.modules.session.service", "SessionService"),
            ("access", "mailhub.core.modules.access.service", "AccessService"),
            ("realtime", "mailhub.core.modules.realtime.service", "RealtimeService"),
            ("message", "mailhub.core.modules.message.service", "MessageService"),
            ("mailer", "mailhub.core.modules.mailer.service", "MailerService"),
            ("magic_link", "mailhub.core.modules.magic_link.service", "MagicLinkService"),
            ("inbound", "mailhub.core.modules.inbound.service", "InboundService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, database, DKIM signer and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    dkim_signer: DkimSigner
    services: Services

    def __init__(self, config: Config) -> None:
        """Load the signing key, connect MongoDB and register services.

        Raises KeySetupError when the DKIM key is missing: unsigned outbound
        mail gets rejected or spam-flagged, so the process must not start.
        """
        self.config = config
        self.dkim_signer = DkimSigner.from_file(config.dkim_private_key_path, config.mail_domain, config.dkim_selector)
        self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()
        logger.info("core_started", mail_domain=self.config.mail_domain)

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        await self.mongo_client.aclose()
