"""Text builders grounded only in the verified events returned by the backend."""

from dataclasses import dataclass
from typing import List, Sequence

from ..models import Event
from ..utils.slugs import collapse_whitespace


@dataclass
class GroundedSummary:
    title: str
    subtitle: str


@dataclass
class QueryPreset:
    id: str
    title: str
    subtitle: str
    query: str


QUICK_QUERY_PRESETS: List[QueryPreset] = [
    QueryPreset(
        "tonight", "Tonight Nearby", "Immediate plans in your town", "what's on tonight"
    ),
    QueryPreset(
        "weekend",
        "This Weekend",
        "Best options for Saturday and Sunday",
        "what's on this weekend",
    ),
    QueryPreset(
        "kids",
        "Kids and Family",
        "Family-friendly ideas",
        "kids and family events this weekend",
    ),
    QueryPreset("free", "Free Events", "No-cost options", "free events this week"),
    QueryPreset("music", "Live Music", "Gigs and live sets", "live music this week"),
]


def timeframe_label(query: str) -> str:
    normalized = str(query or "").lower()
    if "tonight" in normalized:
        return "tonight"
    if "tomorrow" in normalized:
        return "tomorrow"
    if "this weekend" in normalized:
        return "this weekend"
    if "next week" in normalized:
        return "next week"
    if "this week" in normalized:
        return "this week"
    return "in the next 7 days"


def build_grounded_summary(
    town_name: str, query: str, events: Sequence[Event]
) -> GroundedSummary:
    town = town_name or "your town"
    timeframe = timeframe_label(query)
    count = len(events)

    if count == 0:
        return GroundedSummary(
            title=f"No verified events found in {town}",
            subtitle=f"Try a broader search. Current window: {timeframe}.",
        )

    return GroundedSummary(
        title=f"{count} verified event{'' if count == 1 else 's'} in {town}",
        subtitle=f"Showing results for {timeframe}.",
    )


def _event_start(event: Event) -> str:
    return (
        collapse_whitespace(event.start_label)
        or collapse_whitespace(event.start_time)
        or "Time unknown"
    )


def _event_line(event: Event, index: int) -> str:
    title = collapse_whitespace(event.title) or "Untitled event"
    venue = collapse_whitespace(event.venue_name) or "Venue unknown"
    tags = ", ".join(event.tags) if event.tags else "No tags"
    url = collapse_whitespace(event.url) or "No URL"
    return f"{index + 1}. {title} | {_event_start(event)} | {venue} | {tags} | {url}"


def build_ai_prompt(
    query: str, town_name: str, api_answer: str, events: Sequence[Event]
) -> str:
    """Prompt for an external summarizer restricted to the listed events."""
    events_block = "\n".join(_event_line(event, i) for i, event in enumerate(events))
    answer = collapse_whitespace(api_answer)

    return "\n".join(
        [
            "You are TownSpot AI.",
            "Answer using only the verified events provided below.",
            "Do not invent events, venues, times, or links.",
            "If the user asks for something not present in the data, say you "
            "couldn't find a verified match and suggest broadening filters.",
            "Keep the response concise and practical.",
            "",
            f"User query: {collapse_whitespace(query)}",
            f"Town: {collapse_whitespace(town_name) or 'your town'}",
            f"TownSpot API summary: {answer or 'No summary provided.'}",
            "",
            "Verified events:",
            events_block or "No verified events were returned.",
        ]
    )


def build_verified_events_markdown(events: Sequence[Event]) -> str:
    if not events:
        return "_No verified listings found._"

    blocks = []
    for event in events:
        title = collapse_whitespace(event.title) or "Untitled event"
        venue = collapse_whitespace(event.venue_name) or "Venue unknown"
        tags = ", ".join(event.tags)
        link = collapse_whitespace(event.url)
        first_line = f"- [{title}]({link})" if link else f"- {title}"
        second_line = f"  - {_event_start(event)} · {venue}" + (
            f" · {tags}" if tags else ""
        )
        blocks.append(f"{first_line}\n{second_line}")
    return "\n".join(blocks)
