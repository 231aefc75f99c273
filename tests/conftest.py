"""Shared pytest fixtures."""

import copy
import operator
from collections.abc import Callable
from dataclasses import dataclass
from email.message import EmailMessage
from types import SimpleNamespace
from typing import Any

import aiosmtplib
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from mailhub.config import Config
from mailhub.core.core import Services
from mailhub.core.modules.dkim.signer import DkimSigner
from mailhub.core.modules.mailbox.models import Mailbox

MAIL_DOMAIN = "bltnm.store"

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
    "$ne": operator.ne,
}


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict) and condition and all(op.startswith("$") for op in condition):
            for op, operand in condition.items():
                if value is None or not _COMPARATORS[op](value, operand):
                    return False
        elif value != condition:
            return False
    return True


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int


@dataclass
class DeleteResult:
    deleted_count: int


@dataclass
class InsertOneResult:
    inserted_id: Any


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def __aiter__(self) -> "FakeCursor":
        self._iterator = iter(self._documents)
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iterator)
        except StopIteration:
            raise StopAsyncIteration from None


class FakeCollection:
    """In-memory stand-in for an AsyncCollection, enough for the services under test.

    Each coroutine runs to completion without yielding, so conditional updates
    are atomic like their MongoDB counterparts.
    """

    def __init__(self) -> None:
        self.documents: list[dict[str, Any]] = []
        self.indexes: list[tuple[list[tuple[str, int]], dict[str, Any]]] = []

    async def create_index(self, keys: list[tuple[str, int]], **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return "_".join(f"{name}_{direction}" for name, direction in keys)

    async def insert_one(self, document: dict[str, Any]) -> InsertOneResult:
        self.documents.append(copy.deepcopy(document))
        return InsertOneResult(inserted_id=document["_id"])

    def _find(self, query: dict[str, Any] | None) -> list[dict[str, Any]]:
        return [doc for doc in self.documents if _matches(doc, query or {})]

    async def find_one(self, query: dict[str, Any] | None = None, sort: list[tuple[str, int]] | None = None) -> Any:
        found = self._find(query)
        for key, direction in reversed(sort or []):
            found.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return copy.deepcopy(found[0]) if found else None

    def find(self, query: dict[str, Any] | None = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(doc) for doc in self._find(query)])

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> UpdateResult:
        found = self._find(query)
        if not found:
            return UpdateResult(matched_count=0, modified_count=0)
        found[0].update(update.get("$set", {}))
        return UpdateResult(matched_count=1, modified_count=1)

    async def find_one_and_update(self, query: dict[str, Any], update: dict[str, Any], **_: Any) -> Any:
        found = self._find(query)
        if not found:
            return None
        found[0].update(update.get("$set", {}))
        return copy.deepcopy(found[0])

    async def delete_one(self, query: dict[str, Any]) -> DeleteResult:
        found = self._find(query)
        if found:
            self.documents.remove(found[0])
        return DeleteResult(deleted_count=len(found[:1]))


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


class RecordingEmitter:
    """Socket server stand-in that records emitted events and can fail chosen connections."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.events: list[tuple[str, Any, str | None]] = []
        self.failing = failing or set()

    async def emit(self, event: str, data: Any = None, to: str | None = None) -> None:
        if to in self.failing:
            raise ConnectionResetError(f"socket {to} is half-closed")
        self.events.append((event, data, to))

    def received_by(self, connection_id: str) -> list[tuple[str, Any]]:
        return [(event, data) for event, data, to in self.events if to == connection_id]


class FakeSMTP:
    """aiosmtplib.SMTP stand-in that records sent messages or refuses them."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.is_connected = True
        self.refuse_with: aiosmtplib.SMTPException | None = None
        self.rejected: dict[str, aiosmtplib.SMTPResponse] = {}

    async def connect(self) -> None:
        self.is_connected = True

    async def send_message(self, message: EmailMessage) -> tuple[dict[str, aiosmtplib.SMTPResponse], str]:
        if self.refuse_with is not None:
            raise self.refuse_with
        self.sent.append(message)
        return self.rejected, "250 2.0.0 Ok: queued"

    async def quit(self) -> None:
        self.is_connected = False

    def close(self) -> None:
        self.is_connected = False


@pytest.fixture(scope="session")
def private_key():
    """RSA key shared by all DKIM tests (key generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(private_key):
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture
def dkim_signer(private_key):
    return DkimSigner(private_key, MAIL_DOMAIN, "mail")


@pytest.fixture
def config(tmp_path):
    return Config(
        _env_file=None,
        database_url="mongodb://localhost:27017/mailhub_test",
        host="127.0.0.1",
        port=3101,
        debug=True,
        frontend_url="https://inbox.bltnm.store",
        admin_api_key="admin-secret",
        mail_domain=MAIL_DOMAIN,
        dkim_private_key_path=str(tmp_path / "mail.private"),
        smtp_host="mail.bltnm.store",
    )


@pytest.fixture
def database():
    return FakeDatabase()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def core(config, dkim_signer, database, emitter):
    """Core-shaped context wired to in-memory collections and a recording emitter."""
    core = SimpleNamespace(config=config, dkim_signer=dkim_signer, database=database)
    core.services = Services(database)
    core.services.set_core(core)
    core.services.realtime.bind_emitter(emitter)
    return core


@pytest.fixture
def smtp_client():
    return FakeSMTP()


@pytest.fixture
def mailbox_factory(core):
    async def create(address: str = f"alice@{MAIL_DOMAIN}", *, is_active: bool = True) -> Mailbox:
        mailbox = await core.services.mailbox.create_mailbox(address)
        if not is_active:
            mailbox = await core.services.mailbox.set_active(mailbox.id, False)
        return mailbox

    return create
