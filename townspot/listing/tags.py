"""Split an event's free-form tag list into categories, frequency and price."""

from typing import Dict, Iterable, List, Optional

from ..models import Event, TagParts

FREQUENCY_TAGS: Dict[str, str] = {
    "one-off": "One-Off",
    "one off": "One-Off",
    "weekly": "Weekly",
    "daily": "Daily",
    "monthly": "Monthly",
    "fortnightly": "Fortnightly",
    "biweekly": "Biweekly",
    "weekdays": "Weekdays",
    "weekends": "Weekends",
}

FREE_TAGS = {"free", "gratis", "no cost"}
PAID_TAGS = {"paid", "ticketed"}


def _normalize_tag(value: object) -> str:
    return str(value or "").strip().lower()


def dedupe_ordered(values: Iterable[str]) -> List[str]:
    """Drop case-insensitive duplicates, keeping the first spelling seen."""
    seen = set()
    output: List[str] = []
    for value in values:
        raw = str(value or "").strip()
        normalized = raw.lower()
        if not raw or normalized in seen:
            continue
        seen.add(normalized)
        output.append(raw)
    return output


def split_event_tags(tags: Optional[Iterable[str]]) -> TagParts:
    """
    Classify raw tags into frequency, price and categories.

    The first tag that fills an empty frequency or price slot is consumed,
    as are repeats of the value already extracted for that slot; everything
    else becomes a category.
    """
    frequency: Optional[str] = None
    price: Optional[str] = None
    categories: List[str] = []

    for tag in tags or []:
        raw = str(tag or "").strip()
        if not raw:
            continue
        normalized = _normalize_tag(raw)

        if normalized in FREQUENCY_TAGS and frequency in (
            None,
            FREQUENCY_TAGS[normalized],
        ):
            frequency = FREQUENCY_TAGS[normalized]
            continue

        if normalized in FREE_TAGS and price in (None, "Free"):
            price = "Free"
            continue

        if normalized in PAID_TAGS and price in (None, "Paid"):
            price = "Paid"
            continue

        categories.append(raw)

    return TagParts(
        categories=dedupe_ordered(categories), frequency=frequency, price=price
    )


def collect_categories(events: Iterable[Event]) -> List[str]:
    """Distinct categories across events, sorted case-insensitively."""
    found: List[str] = []
    for event in events:
        found.extend(split_event_tags(event.tags).categories)
    return sorted(dedupe_ordered(found), key=str.casefold)
