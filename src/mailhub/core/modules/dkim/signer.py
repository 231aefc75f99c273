"""DKIM-Signature generation with relaxed header and body canonicalization.

The signer covers a fixed header subset (from, to, subject, date) and the
message body. Signing is pure: the same headers, body and key always give the
same header value.
"""

import base64
import hashlib
import re
from collections.abc import Mapping
from pathlib import Path

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from mailhub.errors import KeySetupError

logger = structlog.get_logger(__name__)

CRLF = "\r\n"
SIGNED_HEADERS = ("from", "to", "subject", "date")

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_CRLF_RE = re.compile(r"(?:\r\n)*\Z")


def canonicalize_headers(headers: Mapping[str, str]) -> tuple[str, list[str]]:
    """Canonicalize the signed header subset.

    Returns the CRLF-joined `name:value` lines and the names that were signed,
    in declared order. Headers that are missing or empty are skipped.
    """
    lines: list[str] = []
    names: list[str] = []
    for name in SIGNED_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        lines.append(f"{name}:{_WHITESPACE_RE.sub(' ', value).strip()}")
        names.append(name)
    return CRLF.join(lines), names


def canonicalize_body(body: str) -> str:
    """Normalize line endings to CRLF and leave exactly one trailing CRLF."""
    normalized = body.replace("\r\n", "\n").replace("\n", CRLF)
    return _TRAILING_CRLF_RE.sub("", normalized, count=1) + CRLF


def body_hash(body: str) -> str:
    digest = hashlib.sha256(canonicalize_body(body).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


class DkimSigner:
    """Produces DKIM-Signature header values with one RSA key."""

    def __init__(self, private_key: RSAPrivateKey, domain: str, selector: str) -> None:
        self._private_key = private_key
        self.domain = domain
        self.selector = selector

    @classmethod
    def from_pem(cls, pem: bytes, domain: str, selector: str) -> "DkimSigner":
        try:
            private_key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeySetupError(f"DKIM private key could not be parsed: {e}") from e
        if not isinstance(private_key, RSAPrivateKey):
            raise KeySetupError("DKIM private key must be an RSA key")
        return cls(private_key, domain, selector)

    @classmethod
    def from_file(cls, path: str | Path, domain: str, selector: str) -> "DkimSigner":
        """Load the signing key from disk. Raises KeySetupError if it is absent or invalid."""
        key_path = Path(path)
        try:
            pem = key_path.read_bytes()
        except OSError as e:
            raise KeySetupError(f"DKIM private key not found at {key_path}") from e
        signer = cls.from_pem(pem, domain, selector)
        logger.info("dkim_key_loaded", path=str(key_path), domain=domain, selector=selector)
        return signer

    def sign(self, headers: Mapping[str, str], body: str) -> str:
        """Return the DKIM-Signature header value for the given headers and body."""
        canonical_headers, signed_names = canonicalize_headers(headers)
        signature = self._private_key.sign(
            (canonical_headers + CRLF + CRLF).encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        tags = [
            "v=1",
            "a=rsa-sha256",
            "c=relaxed/relaxed",
            f"d={self.domain}",
            f"s={self.selector}",
            f"bh={body_hash(body)}",
            f"h={':'.join(signed_names)}",
            f"b={base64.b64encode(signature).decode('ascii')}",
        ]
        return "; ".join(tags)
