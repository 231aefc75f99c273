from datetime import UTC, datetime
from email.utils import format_datetime


def now() -> datetime:
    return datetime.now(UTC)


def rfc1123_date(value: datetime) -> str:
    """Format a datetime for a mail Date header, e.g. 'Mon, 19 Oct 2026 10:00:00 GMT'."""
    return format_datetime(value.astimezone(UTC), usegmt=True)
