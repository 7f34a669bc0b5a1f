"""Shared fixtures for the townspot test suite."""

from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from townspot.models import Event, QueryResponse, Town, Zone

API_BASE_URL = "https://api.test/api"


@pytest.fixture
def api_base_url() -> str:
    return API_BASE_URL


@pytest.fixture
def now() -> datetime:
    """Wednesday 22 October 2025, 13:00 in London (BST)."""
    return datetime(2025, 10, 22, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def london() -> str:
    return "Europe/London"


@pytest.fixture
def sample_events() -> List[Event]:
    """Events spread around the `now` fixture, deliberately out of order."""
    return [
        Event(
            id="monday",
            title="Quiz Night",
            start_time="2025-10-27T18:00:00Z",
            venue_name="The Pineapple",
            tags=["Weekly", "Quiz"],
        ),
        Event(
            id="live",
            title="Farmers Market",
            start_time="2025-10-22T11:30:00Z",
            venue_name="Kentish Town Road",
            tags=["Food", "Free"],
        ),
        Event(
            id="sunday",
            title="Sunday Jazz",
            start_time="2025-10-26T18:00:00Z",
            venue_name="The Fiddler's Elbow",
            tags=["Music", "Paid"],
        ),
        Event(
            id="past",
            title="Breakfast Club",
            start_time="2025-10-22T08:00:00Z",
            end_time="2025-10-22T09:00:00Z",
            venue_name="Café",
        ),
        Event(
            id="later",
            title="Open Mic",
            start_time="2025-10-22T20:00:00Z",
            venue_name="The Abbey Tavern",
            tags=["Music", "Comedy"],
        ),
        Event(
            id="broken",
            title="Mystery Event",
            start_time="not a date",
        ),
        Event(
            id="soon",
            title="Story Time",
            start_time="2025-10-22T13:00:00Z",
            end_time="2025-10-22T14:00:00Z",
            venue_name="Kentish Town Library",
            tags=["Kids", "Free"],
        ),
        Event(
            id="tomorrow",
            title="Life Drawing",
            start_time="2025-10-23T18:00:00Z",
            venue_name="Torriano Meeting House",
            tags=["Art", "Monthly"],
        ),
    ]


@pytest.fixture
def sample_response(sample_events: List[Event]) -> QueryResponse:
    return QueryResponse(
        answer="Here's what's on in Kentish Town.",
        events=sample_events,
        town=Town(name="Kentish Town", slug="kentish-town", timezone="Europe/London"),
        suggestions=["live music tonight", "free events this week"],
    )


@pytest.fixture
def sample_query_payload() -> Dict[str, Any]:
    """Raw JSON body as returned by the event query endpoint."""
    return {
        "answer": "Two events tonight.",
        "events": [
            {
                "id": "evt-1",
                "title": "Jazz at the Abbey",
                "startTime": "2025-10-22T19:30:00Z",
                "endTime": "2025-10-22T22:00:00Z",
                "venueName": "The Abbey Tavern",
                "startLabel": "Tonight 20:30",
                "tags": ["Music", "Weekly", "Free"],
                "url": "https://townspot.co/event/jazz-at-the-abbey",
            },
            {
                "id": "evt-2",
                "title": "Comedy Downstairs",
                "startTime": "2025-10-22T20:00:00Z",
                "venueName": "The Pineapple",
                "tags": ["Comedy"],
            },
        ],
        "town": {
            "name": "Kentish Town",
            "slug": "kentish-town",
            "timezone": "Europe/London",
            "countryCode": "GB",
        },
        "suggestions": ["comedy this weekend"],
    }


@pytest.fixture
def sample_zones_payload() -> List[Dict[str, Any]]:
    """Raw directory records, including ones that must be dropped."""
    return [
        {"id": 2, "name": "Soho", "slug": "soho", "lat": 51.513, "lng": -0.136},
        {
            "id": 1,
            "name": "Kentish Town",
            "slug": "kentish-town",
            "country_code": "gb",
            "activeUsers": 120,
            "weeklyEventsCount": 42,
            "latitude": 51.55,
            "longitude": -0.14,
        },
        {"id": 3, "name": "Hidden Town", "slug": "hidden-town", "hidden": True},
        {"id": 4, "name": "Closed Town", "slug": "closed-town", "active": False},
        {"name": "No Id", "slug": "no-id"},
        {"id": 5, "name": "", "slug": "nameless"},
        {"id": 6, "name": "Soho Again", "slug": "soho"},
        "not a record",
    ]


@pytest.fixture
def sample_zones() -> List[Zone]:
    return [
        Zone(id=1, name="Kentish Town", slug="kentish-town", lat=51.55, lng=-0.14),
        Zone(id=2, name="Soho", slug="soho", lat=51.513, lng=-0.136),
    ]
