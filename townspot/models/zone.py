from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

VALID_TOWN_SOURCES = {"argument", "preference", "detected", "fallback"}


@dataclass
class Zone:
    id: int
    name: str
    slug: str
    country_code: Optional[str] = None
    active_users: Optional[int] = None
    weekly_events_count: Optional[int] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass
class TownContext:
    slug: str
    name: str
    source: str                                # one of VALID_TOWN_SOURCES

    def __post_init__(self):
        if self.source not in VALID_TOWN_SOURCES:
            raise ValueError(
                f"Invalid source '{self.source}' for town '{self.slug}'. "
                f"Must be one of: {sorted(VALID_TOWN_SOURCES)}"
            )

    def source_label(self) -> str:
        """Human-readable description of how the town was chosen."""
        if self.source == "detected":
            return "auto-detected from your location"
        if self.source == "argument":
            return "from command argument"
        if self.source == "preference":
            return "from command preference"
        return "fallback town"
