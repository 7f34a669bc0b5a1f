from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..utils.timezone_utils import DEFAULT_TIMEZONE
from .event import Event


def to_float(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings to a finite float, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


@dataclass
class Town:
    name: str
    slug: str
    timezone: str = DEFAULT_TIMEZONE
    country_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Town":
        return cls(
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
            timezone=str(data.get("timezone") or DEFAULT_TIMEZONE),
            country_code=data.get("countryCode") or None,
        )


@dataclass
class QueryResponse:
    answer: str
    events: List[Event]
    town: Town
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], town_slug: str = "") -> "QueryResponse":
        raw_events = data.get("events")
        events = [
            Event.from_dict(item)
            for item in (raw_events if isinstance(raw_events, list) else [])
            if isinstance(item, dict)
        ]
        raw_town = data.get("town")
        town = (
            Town.from_dict(raw_town)
            if isinstance(raw_town, dict)
            else Town(name="", slug=town_slug)
        )
        suggestions = data.get("suggestions")
        return cls(
            answer=str(data.get("answer") or ""),
            events=events,
            town=town,
            suggestions=[str(s) for s in suggestions if s]
            if isinstance(suggestions, list)
            else [],
        )


@dataclass
class EventDetails:
    uuid: str
    title: str
    description: Optional[str] = None
    venue_description: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timezone: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    source_url: Optional[str] = None
    image_url: Optional[str] = None
    price_info: Optional[str] = None
    booking_required: Optional[bool] = None
    is_free: Optional[bool] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    zone_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventDetails":
        return cls(
            uuid=str(data.get("uuid") or ""),
            title=str(data.get("title") or ""),
            description=data.get("description"),
            venue_description=data.get("venueDescription"),
            location_name=data.get("locationName"),
            location_address=data.get("locationAddress"),
            start_time=data.get("startTimeLocal") or data.get("startTime"),
            end_time=data.get("endTimeLocal") or data.get("endTime"),
            timezone=data.get("resolvedTimezone") or data.get("timezone"),
            categories=list(data.get("categories") or []),
            source_url=data.get("sourceUrl"),
            image_url=data.get("mainImgUrl") or data.get("imageUrl"),
            price_info=data.get("priceInfo"),
            booking_required=data.get("bookingRequired"),
            is_free=data.get("isFree"),
            lat=to_float(data.get("lat")),
            lng=to_float(data.get("lng")),
            zone_name=data.get("zoneName"),
        )
