"""
Date formatting helpers.

The device API signs the exact ``Date`` header string, the scheduler state
files persist RFC-1123 timestamps, and XMLTV wants local-time stamps with a
numeric offset.
"""

from datetime import date, datetime, timedelta, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def rfc1123_date(moment: Optional[datetime] = None) -> str:
    """Format a moment as ``Sun, 06 Nov 1994 08:49:37 GMT``."""
    if moment is None:
        moment = utc_now()
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    # Sub-second precision would be dropped by the header anyway
    return format_datetime(moment.astimezone(timezone.utc).replace(microsecond=0), usegmt=True)


def parse_rfc1123(value: str) -> datetime:
    """
    Parse an RFC-1123 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a valid date string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, IndexError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_iso8601(value: str) -> datetime:
    """Parse the guide API's ISO timestamps (``2024-05-01T14:00Z``)."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def xmltv_date(moment: datetime) -> str:
    """Format as ``YYYYMMDDhhmmss +hhmm`` in the host's local time."""
    return moment.astimezone().strftime("%Y%m%d%H%M%S %z")


def guide_days(days: int, today: Optional[date] = None) -> list[str]:
    """List ``yyyy-mm-dd`` strings for today and the following days."""
    if today is None:
        today = datetime.now().date()
    return [(today + timedelta(days=i)).strftime("%Y-%m-%d") for i in range(days)]
