from .event import DaySection, Event, TagParts
from .response import EventDetails, QueryResponse, Town
from .zone import TownContext, Zone

__all__ = [
    "DaySection",
    "Event",
    "EventDetails",
    "QueryResponse",
    "TagParts",
    "Town",
    "TownContext",
    "Zone",
]
