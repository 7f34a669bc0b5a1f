"""Time-window and category filtering for event lists.

None of these functions raise on malformed events: an event whose start
time cannot be parsed simply never matches a time-based window.
"""

import math
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

from ..models import Event
from ..utils.timezone_utils import (
    date_key,
    date_keys_from,
    now_utc,
    weekday_in_timezone,
)
from .tags import split_event_tags
from .time_window import TimeWindow

SOON_THRESHOLD_MINUTES = 180

_FIXED_WINDOW_DAYS = {
    TimeWindow.TODAY: 1,
    TimeWindow.TODAY_TOMORROW: 2,
    TimeWindow.NEXT_3_DAYS: 3,
    TimeWindow.NEXT_7_DAYS: 7,
}


def event_bounds(event: Event) -> Optional[Tuple[datetime, datetime]]:
    """Return (start, end) for an event, or None when its start is unusable."""
    start = event.start_at
    if start is None:
        return None
    end = event.end_at
    assert end is not None, "end_at is always set when start_at is"
    return start, end


def is_live_now(event: Event, now: Optional[datetime] = None) -> bool:
    """True iff now falls within [start, end)."""
    bounds = event_bounds(event)
    if bounds is None:
        return False
    current = now or now_utc()
    start, end = bounds
    return start <= current < end


def is_upcoming(event: Event, now: Optional[datetime] = None) -> bool:
    """True iff the event has not yet concluded."""
    bounds = event_bounds(event)
    if bounds is None:
        return False
    return bounds[1] > (now or now_utc())


def relative_start_tag(event: Event, now: Optional[datetime] = None) -> Optional[str]:
    """
    Short accessory tag for an event.

    Returns:
        "NOW" when live, "in Nm" when the start is at most three hours away,
        otherwise None
    """
    current = now or now_utc()
    if is_live_now(event, current):
        return "NOW"
    start = event.start_at
    if start is None or start <= current:
        return None
    minutes = (start - current).total_seconds() / 60
    if minutes > SOON_THRESHOLD_MINUTES:
        return None
    return f"in {math.ceil(minutes)}m"


def window_day_count(window: TimeWindow, now: datetime, tz_name: str) -> int:
    """Number of calendar days, starting today, a date-bucketed window spans."""
    if window == TimeWindow.THIS_WEEK:
        # Through the coming Sunday, inclusive of today.
        return 8 - weekday_in_timezone(now, tz_name)
    return _FIXED_WINDOW_DAYS[window]


def allowed_date_keys(window: TimeWindow, now: datetime, tz_name: str) -> Set[str]:
    return set(date_keys_from(now, tz_name, window_day_count(window, now, tz_name)))


def filter_by_time_window(
    events: Iterable[Event],
    tz_name: str,
    window: TimeWindow,
    now: Optional[datetime] = None,
) -> List[Event]:
    """
    Keep the events that belong to a time window.

    Args:
        events: Events as returned by the backend
        tz_name: IANA timezone of the town, used for calendar-day windows
        window: Time window to apply
        now: Reference instant (defaults to the current time)

    Returns:
        Matching events in their original order
    """
    current = now or now_utc()

    if window == TimeWindow.NOW:
        return [event for event in events if is_live_now(event, current)]

    upcoming = [event for event in events if is_upcoming(event, current)]
    if window == TimeWindow.ALL_UPCOMING:
        return upcoming

    allowed = allowed_date_keys(window, current, tz_name)
    filtered = []
    for event in upcoming:
        start = event.start_at
        if start is not None and date_key(start, tz_name) in allowed:
            filtered.append(event)
    return filtered


def filter_by_category(
    events: Iterable[Event], category: Optional[str]
) -> List[Event]:
    """Keep events tagged with the category (case-insensitive); None keeps all."""
    if not category:
        return list(events)
    wanted = category.strip().casefold()
    return [
        event
        for event in events
        if any(
            value.casefold() == wanted
            for value in split_event_tags(event.tags).categories
        )
    ]
