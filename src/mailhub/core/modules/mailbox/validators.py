import re

from mailhub.errors import ValidationError

ADDRESS_RE = re.compile(r"^[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.\w{2,}$")


def normalize_address(address: str) -> str:
    """Validate and lower-case an email address.

    Raises:
        ValidationError: If the address is not a plausible mailbox address
    """
    normalized = address.strip().lower()
    if not ADDRESS_RE.fullmatch(normalized):
        raise ValidationError(f"'{address}' is not a valid email address")
    return normalized


def split_address(address: str) -> tuple[str, str]:
    """Split a normalized address into (local part, domain)."""
    local_part, _, domain = address.rpartition("@")
    return local_part, domain
