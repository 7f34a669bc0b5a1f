"""Glue between user input, town resolution, the backend and the listing view.

All work runs on one asyncio event loop. Each logical request slot
(``events``, ``zones``, ``town``) carries a generation counter: a request
captures the counter when it is dispatched and its result is only applied if
no newer request was issued for the same slot in the meantime.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

import aiohttp

from .api.base import ConfigurationError, TownspotApiError
from .api.client import TownspotClient
from .api.zones import ZoneDirectory
from .listing.filters import (
    filter_by_category,
    filter_by_time_window,
    relative_start_tag,
)
from .listing.grouping import group_by_day
from .listing.summary import GroundedSummary, build_grounded_summary
from .listing.tags import collect_categories
from .listing.time_window import FilterSelection, TimeWindow, infer_time_window
from .models import DaySection, Event, QueryResponse, TownContext, Zone
from .location.resolver import TownResolver
from .utils.slugs import collapse_whitespace, sanitize_town_slug
from .utils.timezone_utils import now_utc

DEFAULT_SEARCH_PHRASE = "what's on this week"
DEFAULT_DEBOUNCE_SECONDS = 0.35


def build_query_string(text: Optional[str], window: Optional[TimeWindow] = None) -> str:
    """
    Canonical backend query for raw search text.

    Whitespace is collapsed, empty text becomes the default phrase, and the
    window's hint phrase is appended when the text has no time intent itself.
    """
    query = collapse_whitespace(text)
    if not query:
        return DEFAULT_SEARCH_PHRASE
    if window is not None and infer_time_window(query) is None:
        return f"{query} {window.hint}"
    return query


class RequestSlot:
    """Generation counter for one logical kind of request."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.generation = 0

    def begin(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation


@dataclass
class EventView:
    town_name: str
    town_slug: str
    timezone: str
    sections: List[DaySection]
    relative_tags: Dict[str, str]
    summary: GroundedSummary
    categories: List[str]
    suggestions: List[str] = field(default_factory=list)
    answer: str = ""

    @property
    def events(self) -> List[Event]:
        return [event for section in self.sections for event in section.events]

    @property
    def event_count(self) -> int:
        return sum(len(section.events) for section in self.sections)

    def relative_tag(self, event: Event) -> Optional[str]:
        for position, candidate in enumerate(self.events):
            if candidate is event:
                return self.relative_tags.get(event_key(event, position))
        return None


def event_key(event: Event, position: int) -> str:
    """Key for per-event view data; events without an id fall back to position."""
    return event.id or f"#{position}"


@dataclass
class ViewState:
    search_text: str = ""
    selected_town_slug: Optional[str] = None     # None means "auto"
    town: Optional[TownContext] = None
    zones: List[Zone] = field(default_factory=list)
    zones_error: str = ""
    response: Optional[QueryResponse] = None
    view: Optional[EventView] = None
    error_message: str = ""
    loading: bool = False


def build_event_view(
    response: QueryResponse,
    window: TimeWindow,
    category: Optional[str],
    query: str,
    town_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> EventView:
    """Filter, group and annotate a backend response for display."""
    tz_name = response.town.timezone
    events = filter_by_time_window(response.events, tz_name, window, now)
    events = filter_by_category(events, category)
    sections = group_by_day(events, tz_name, now)

    visible = [event for section in sections for event in section.events]
    relative_tags = {}
    for position, event in enumerate(visible):
        tag = relative_start_tag(event, now)
        if tag:
            relative_tags[event_key(event, position)] = tag

    name = response.town.name or town_name or "Town"
    return EventView(
        town_name=name,
        town_slug=response.town.slug,
        timezone=tz_name,
        sections=sections,
        relative_tags=relative_tags,
        summary=build_grounded_summary(name, query, visible),
        categories=collect_categories(response.events),
        suggestions=list(response.suggestions),
        answer=response.answer,
    )


class QueryOrchestrator:
    def __init__(
        self,
        client: TownspotClient,
        session: aiohttp.ClientSession,
        locale: str = "en-GB",
        limit: Optional[int] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        resolver: Optional[TownResolver] = None,
        zone_directory: Optional[ZoneDirectory] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.client = client
        self.session = session
        self.locale = locale
        self.limit = limit
        self.debounce_seconds = debounce_seconds
        self.resolver = resolver or TownResolver(client.api_base_url)
        self.zone_directory = zone_directory or ZoneDirectory(client.api_base_url)
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self.state = ViewState()
        self.selection = FilterSelection()
        self.cache: Dict[str, QueryResponse] = {}
        self.slots = {
            "events": RequestSlot("events"),
            "zones": RequestSlot("zones"),
            "town": RequestSlot("town"),
        }
        self._debounce_task: Optional[asyncio.Task] = None

    @property
    def effective_town_slug(self) -> str:
        if self.state.selected_town_slug:
            return self.state.selected_town_slug
        return self.state.town.slug if self.state.town else ""

    # -- input ---------------------------------------------------------------

    def set_search_text(self, text: str) -> None:
        """Record a keystroke; the query fires once input is stable."""
        self.state.search_text = text
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.ensure_future(self._debounced_query(text))

    async def _debounced_query(self, text: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self.run_query(text)

    async def wait_for_pending(self) -> None:
        """Wait for a scheduled debounced query, if any, to finish."""
        task = self._debounce_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def choose_time_window(self, window: TimeWindow) -> None:
        self.selection.choose_time_window(window, self.state.search_text)
        self._republish()

    def choose_category(self, category: Optional[str]) -> None:
        self.selection.choose_category(category, self.state.search_text)
        self._republish()

    async def select_town(self, slug: Optional[str]) -> Optional[EventView]:
        """Pick a town from the directory, or None to go back to auto."""
        town_slug = sanitize_town_slug(slug) if slug else ""
        self.state.selected_town_slug = town_slug or None
        if not town_slug:
            await self.resolve_town()
        return await self.run_query()

    # -- network-backed operations --------------------------------------------

    async def refresh_zones(self) -> List[Zone]:
        slot = self.slots["zones"]
        token = slot.begin()
        try:
            zones = await self.zone_directory.fetch_active_zones(self.session)
        except TownspotApiError as e:
            if slot.is_current(token):
                self.state.zones = []
                self.state.zones_error = e.to_user_message()
            return []

        if not slot.is_current(token):
            self.logger.debug("Discarding stale zone list")
            return zones

        self.state.zones = zones
        self.state.zones_error = ""
        selected = self.state.selected_town_slug
        if selected and zones and all(zone.slug != selected for zone in zones):
            self.logger.info(f"Town {selected} is not active, switching to auto")
            self.state.selected_town_slug = None
        return zones

    async def resolve_town(
        self,
        argument_town_slug: Optional[str] = None,
        default_town_slug: Optional[str] = None,
    ) -> Optional[TownContext]:
        slot = self.slots["town"]
        token = slot.begin()
        if self.state.zones:
            self.resolver.zones = self.state.zones
        context = await self.resolver.resolve(
            argument_town_slug, default_town_slug, session=self.session
        )
        if not slot.is_current(token):
            self.logger.debug(f"Discarding stale town resolution {context.slug}")
            return None
        self.state.town = context
        return context

    async def run_query(self, text: Optional[str] = None) -> Optional[EventView]:
        """
        Query the backend for the current town and publish the result.

        Returns:
            The new view, or None when there is no town yet, the request
            failed, or a newer request superseded this one
        """
        if text is not None:
            self.state.search_text = text
        query_text = self.state.search_text
        town_slug = self.effective_town_slug
        if not town_slug:
            self.logger.debug("No town resolved yet; skipping query")
            return None

        self.selection.apply_query(query_text)
        slot = self.slots["events"]
        token = slot.begin()

        cached = self.cache.get(town_slug)
        if cached is not None:
            self._publish(cached, query_text)

        window = self.selection.time_window
        backend_query = build_query_string(
            query_text, None if window == TimeWindow.ALL_UPCOMING else window
        )

        self.state.loading = True
        self.state.error_message = ""
        try:
            response = await self.client.query(
                self.session,
                backend_query,
                town_slug,
                locale=self.locale,
                limit=self.limit,
            )
        except (TownspotApiError, ConfigurationError) as e:
            if not slot.is_current(token):
                return None
            self.logger.error(f"Query failed for {town_slug}: {e}")
            self.state.response = None
            self.state.view = None
            self.state.error_message = str(e)
            self.state.loading = False
            return None

        if not slot.is_current(token):
            self.logger.debug(f"Discarding stale response for '{query_text}'")
            return None

        self.cache[town_slug] = response
        self._publish(response, query_text)
        self.state.loading = False
        return self.state.view

    # -- view ----------------------------------------------------------------

    def _publish(self, response: QueryResponse, query_text: str) -> None:
        self.state.response = response
        self.state.view = build_event_view(
            response,
            self.selection.time_window,
            self.selection.category,
            query_text,
            town_name=self.state.town.name if self.state.town else None,
            now=self.clock(),
        )

    def _republish(self) -> None:
        if self.state.response is not None:
            self._publish(self.state.response, self.state.search_text)
