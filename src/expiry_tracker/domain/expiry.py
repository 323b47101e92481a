"""Expiry date arithmetic and status classification."""

from datetime import date, datetime
from enum import Enum
from zoneinfo import ZoneInfo

CRITICAL_MAX_DAYS = 1
WARNING_MAX_DAYS = 3

DateLike = date | datetime | str


class ExpiryStatus(str, Enum):
    """Coarse badge status for an item."""

    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    SAFE = "safe"


def to_calendar_date(value: DateLike, timezone_name: str = "UTC") -> date:
    """Truncate a date, datetime or ISO-8601 string to its calendar day.

    Timestamps carrying an offset are converted to ``timezone_name`` first;
    naive timestamps are taken as already local to it.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(timezone_name))
        return value.date()
    return value


def days_remaining(
    expiry: DateLike, reference: DateLike, timezone_name: str = "UTC"
) -> int:
    """Return whole days from reference to expiry; negative means expired.

    Both sides are truncated to calendar days in ``timezone_name`` first, so
    any two instants on the same local day yield 0.
    """
    expiry_day = to_calendar_date(expiry, timezone_name)
    return (expiry_day - to_calendar_date(reference, timezone_name)).days


def classify(days: int) -> ExpiryStatus:
    """Map days remaining to a status badge."""
    if days < 0:
        return ExpiryStatus.EXPIRED
    if days <= CRITICAL_MAX_DAYS:
        return ExpiryStatus.CRITICAL
    if days <= WARNING_MAX_DAYS:
        return ExpiryStatus.WARNING
    return ExpiryStatus.SAFE


def expiry_status(
    expiry: DateLike, reference: DateLike, timezone_name: str = "UTC"
) -> ExpiryStatus:
    """Return the status badge for an expiry date seen from a reference day."""
    return classify(days_remaining(expiry, reference, timezone_name))


def today_in(timezone_name: str) -> date:
    """Return the current calendar date in the given time zone."""
    return datetime.now(tz=ZoneInfo(timezone_name)).date()


def urgency_text(days: int) -> str:
    """Short phrase describing how soon an item expires."""
    if days == 0:
        return "expires today!"
    if days == 1:
        return "expires tomorrow!"
    return f"expires in {days} days"
