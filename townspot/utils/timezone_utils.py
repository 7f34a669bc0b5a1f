"""
Timezone utilities for consistent per-town calendar handling.

Every "calendar day" comparison in the listing code goes through the helpers
in this module so that events are bucketed by the date they fall on in the
town's own IANA timezone, including DST transitions, rather than by raw UTC
day boundaries.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

DEFAULT_TIMEZONE = "Europe/London"

logger = logging.getLogger(__name__)


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Return a ZoneInfo for the given name, falling back to Europe/London.

    Args:
        tz_name: IANA timezone name, possibly empty or unknown

    Returns:
        ZoneInfo instance that is always usable
    """
    if not tz_name:
        return ZoneInfo(DEFAULT_TIMEZONE)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug(f"Unknown timezone '{tz_name}', using {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """Get the current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Timestamps without an offset are read as UTC. Anything that does not
    parse yields None instead of raising.

    Args:
        value: ISO-8601 string from the backend

    Returns:
        Timezone-aware datetime, or None when the value is unusable
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def local_date(instant: datetime, tz_name: Optional[str]) -> date:
    """Return the calendar date an instant falls on in the given timezone."""
    return instant.astimezone(get_zone(tz_name)).date()


def date_key(instant: datetime, tz_name: Optional[str]) -> str:
    """
    Format an instant as a YYYY-MM-DD key in the given timezone.

    Args:
        instant: Timezone-aware datetime
        tz_name: IANA timezone name

    Returns:
        Date key string such as "2025-07-04"
    """
    return local_date(instant, tz_name).isoformat()


def date_keys_from(
    now: datetime, tz_name: Optional[str], days: int
) -> List[str]:
    """Return `days` consecutive date keys starting with today in tz_name."""
    today = local_date(now, tz_name)
    return [(today + timedelta(days=offset)).isoformat() for offset in range(days)]


def weekday_in_timezone(instant: datetime, tz_name: Optional[str]) -> int:
    """Return the ISO weekday (Monday=1 ... Sunday=7) in the given timezone."""
    return local_date(instant, tz_name).isoweekday()


def format_day_label(instant: datetime, tz_name: Optional[str]) -> str:
    """Format a day heading like "Wednesday, 21 Oct"."""
    return instant.astimezone(get_zone(tz_name)).strftime("%A, %d %b")


def format_clock_time(instant: datetime, tz_name: Optional[str]) -> str:
    """Format a 24-hour local time like "19:30"."""
    return instant.astimezone(get_zone(tz_name)).strftime("%H:%M")


def format_date_time(instant: datetime, tz_name: Optional[str]) -> str:
    """Format a local date and time like "Wed 22 Oct 20:30"."""
    return instant.astimezone(get_zone(tz_name)).strftime("%a %d %b %H:%M")
