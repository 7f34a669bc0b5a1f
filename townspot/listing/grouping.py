from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import DaySection, Event
from ..utils.timezone_utils import (
    date_key,
    format_clock_time,
    format_day_label,
    local_date,
    now_utc,
)


def _start_sort_key(event: Event) -> Tuple[int, float]:
    start = event.start_at
    if start is None:
        return (1, 0.0)
    return (0, start.timestamp())


def sort_events(events: Iterable[Event]) -> List[Event]:
    """Sort ascending by start; unparseable starts go last in original order."""
    return sorted(events, key=_start_sort_key)


def group_by_day(
    events: Iterable[Event], tz_name: str, now: Optional[datetime] = None
) -> List[DaySection]:
    """
    Bucket events into per-day sections in the town's timezone.

    Sections come out in chronological order, titled "Today", "Tomorrow" or
    "Wednesday, 21 Oct". Events whose start time cannot be parsed are skipped.
    """
    current = now or now_utc()
    today = local_date(current, tz_name)
    today_key = today.isoformat()
    tomorrow_key = (today + timedelta(days=1)).isoformat()

    grouped: Dict[str, DaySection] = {}
    for event in sort_events(events):
        start = event.start_at
        if start is None:
            continue

        key = date_key(start, tz_name)
        if key not in grouped:
            if key == today_key:
                title = "Today"
            elif key == tomorrow_key:
                title = "Tomorrow"
            else:
                title = format_day_label(start, tz_name)
            grouped[key] = DaySection(id=key, title=title)

        grouped[key].events.append(event)

    return list(grouped.values())


def format_event_time(event: Event, tz_name: str) -> str:
    """Local "HH:MM" start time, or "" when the start is unusable."""
    start = event.start_at
    if start is None:
        return ""
    return format_clock_time(start, tz_name)
