"""Infer a time window and a category hint from free-text queries.

Inference is advisory: when a user has picked a window or category by hand
for a given query, re-running inference on that same query must not
overwrite the choice. ``FilterSelection`` tracks that per dimension.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class TimeWindow(str, Enum):
    NOW = "now"
    ALL_UPCOMING = "all_upcoming"
    TODAY = "today"
    TODAY_TOMORROW = "today_tomorrow"
    NEXT_3_DAYS = "next_3_days"
    NEXT_7_DAYS = "next_7_days"
    THIS_WEEK = "this_week"

    @property
    def label(self) -> str:
        return _WINDOW_LABELS[self]

    @property
    def hint(self) -> str:
        """Phrase appended to backend queries that carry no time intent."""
        return _WINDOW_HINTS[self]


_WINDOW_LABELS = {
    TimeWindow.NOW: "Happening Now",
    TimeWindow.ALL_UPCOMING: "All Upcoming",
    TimeWindow.TODAY: "Today",
    TimeWindow.TODAY_TOMORROW: "Today & Tomorrow",
    TimeWindow.NEXT_3_DAYS: "Next 3 Days",
    TimeWindow.NEXT_7_DAYS: "Next 7 Days",
    TimeWindow.THIS_WEEK: "This Week",
}

_WINDOW_HINTS = {
    TimeWindow.NOW: "happening now",
    TimeWindow.ALL_UPCOMING: "upcoming",
    TimeWindow.TODAY: "today",
    TimeWindow.TODAY_TOMORROW: "today and tomorrow",
    TimeWindow.NEXT_3_DAYS: "in the next 3 days",
    TimeWindow.NEXT_7_DAYS: "in the next 7 days",
    TimeWindow.THIS_WEEK: "this week",
}

# First matching rule wins.
TIME_WINDOW_RULES: List[Tuple[Tuple[str, ...], TimeWindow]] = [
    (("now", "happening now", "right now"), TimeWindow.NOW),
    (("tomorrow",), TimeWindow.TODAY_TOMORROW),
    (("this weekend", "weekend"), TimeWindow.NEXT_3_DAYS),
    (("this week",), TimeWindow.THIS_WEEK),
    (("next week", "next 7 days", "next seven days"), TimeWindow.NEXT_7_DAYS),
    (("today", "tonight", "this evening"), TimeWindow.TODAY),
]

CATEGORY_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("kids", "kid", "children", "child", "family", "toddler", "toddlers"), "Kids"),
    (("music", "live", "dj", "djs", "concert", "concerts", "gig", "gigs"), "Music"),
    (("food", "eat", "dinner", "restaurant", "restaurants"), "Food"),
    (("comedy",), "Comedy"),
    (("art", "arts", "gallery", "galleries", "museum", "museums"), "Art"),
]

_APOSTROPHES_RE = re.compile(r"['’]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(text: Optional[str]) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    value = _APOSTROPHES_RE.sub("", str(text or "").lower())
    value = _NON_ALNUM_RE.sub(" ", value)
    return _WHITESPACE_RE.sub(" ", value).strip()


def _contains_phrase(normalized: str, phrase: str) -> bool:
    return f" {phrase} " in f" {normalized} "


def infer_time_window(text: Optional[str]) -> Optional[TimeWindow]:
    normalized = normalize_query(text)
    if not normalized:
        return None
    for phrases, window in TIME_WINDOW_RULES:
        if any(_contains_phrase(normalized, phrase) for phrase in phrases):
            return window
    return None


def infer_category(text: Optional[str]) -> Optional[str]:
    normalized = normalize_query(text)
    if not normalized:
        return None
    for keywords, category in CATEGORY_RULES:
        if any(_contains_phrase(normalized, keyword) for keyword in keywords):
            return category
    return None


@dataclass
class SelectionMemo:
    """Remembers the query text behind the last manual selection."""

    manual_query: Optional[str] = None

    def mark_manual(self, query: Optional[str]) -> None:
        self.manual_query = normalize_query(query)

    def allows_inference(self, query: Optional[str]) -> bool:
        return self.manual_query is None or self.manual_query != normalize_query(
            query
        )


@dataclass
class FilterSelection:
    time_window: TimeWindow = TimeWindow.ALL_UPCOMING
    category: Optional[str] = None
    time_window_memo: SelectionMemo = field(default_factory=SelectionMemo)
    category_memo: SelectionMemo = field(default_factory=SelectionMemo)

    def apply_query(self, query: Optional[str]) -> None:
        """Auto-infer both dimensions unless a manual choice covers this query."""
        if self.time_window_memo.allows_inference(query):
            window = infer_time_window(query)
            if window is not None:
                self.time_window = window
        if self.category_memo.allows_inference(query):
            category = infer_category(query)
            if category is not None:
                self.category = category

    def choose_time_window(self, window: TimeWindow, query: Optional[str]) -> None:
        self.time_window = window
        self.time_window_memo.mark_manual(query)

    def choose_category(self, category: Optional[str], query: Optional[str]) -> None:
        self.category = category or None
        self.category_memo.mark_manual(query)
