from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..utils.timezone_utils import parse_instant

DEFAULT_EVENT_DURATION = timedelta(hours=2)


@dataclass
class Event:
    id: str
    title: str
    start_time: str                            # ISO-8601 as delivered by the backend
    end_time: Optional[str] = None
    venue_name: str = ""
    start_label: str = ""                      # e.g. "Tonight 19:30"
    tags: List[str] = field(default_factory=list)
    url: str = ""

    @property
    def start_at(self) -> Optional[datetime]:
        return parse_instant(self.start_time)

    @property
    def end_at(self) -> Optional[datetime]:
        """End instant; missing, unparseable or non-positive durations get 2h."""
        start = self.start_at
        if start is None:
            return None
        end = parse_instant(self.end_time)
        if end is None or end <= start:
            return start + DEFAULT_EVENT_DURATION
        return end

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        tags = data.get("tags") or []
        raw_id = data.get("id")
        return cls(
            id="" if raw_id is None else str(raw_id),
            title=str(data.get("title") or ""),
            start_time=str(data.get("startTime") or ""),
            end_time=data.get("endTime") or None,
            venue_name=str(data.get("venueName") or ""),
            start_label=str(data.get("startLabel") or ""),
            tags=[str(tag) for tag in tags if tag] if isinstance(tags, list) else [],
            url=str(data.get("url") or ""),
        )

    def __str__(self) -> str:
        start = self.start_at
        start_str = start.strftime("%Y-%m-%d %H:%M") if start else "unscheduled"
        return f"{start_str}: {self.title} @ {self.venue_name}"


@dataclass
class TagParts:
    categories: List[str] = field(default_factory=list)
    frequency: Optional[str] = None            # closed vocabulary, see listing.tags
    price: Optional[str] = None                # "Free" | "Paid"


@dataclass
class DaySection:
    id: str                                    # YYYY-MM-DD in the town timezone
    title: str
    events: List[Event] = field(default_factory=list)
