"""Date and time helpers.

Stored timestamps are timezone-aware UTC ISO strings. Dates and times of day
entered by parents (reminder dates, health record dates) carry no timezone
and are interpreted in the configured TIMEZONE.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import settings


def local_tz() -> tzinfo:
    return ZoneInfo(settings.TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return utc_now().isoformat()


def today() -> date:
    """Current calendar date in the configured timezone."""
    return datetime.now(local_tz()).date()


def parse_datetime(value: Union[str, datetime], tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO date or datetime into an aware datetime.

    "2024-05-01" means local midnight, "2024-05-01T08:30:00Z" keeps its
    offset, and naive datetimes are placed in ``tz`` (default: TIMEZONE).

    Raises:
        ValueError: If the value is not ISO formatted
    """
    if isinstance(value, datetime):
        dt = value
    else:
        # fromisoformat only accepts the 'Z' suffix from Python 3.11
        dt = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or local_tz())
    return dt


def parse_time_of_day(value: str):
    """Parse "HH:MM" into an (hour, minute) tuple.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    parts = str(value).strip().split(':')
    if len(parts) < 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hour, minute
