"""Orchestration tests: stale responses, debouncing and error surfacing."""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from townspot.api.base import ConfigurationError, TownspotApiError
from townspot.listing.time_window import TimeWindow
from townspot.models import Event, QueryResponse, TownContext, Town, Zone
from townspot.orchestrator import (
    DEFAULT_SEARCH_PHRASE,
    QueryOrchestrator,
    RequestSlot,
    build_event_view,
    build_query_string,
)


def _response(slug: str, answer: str = "") -> QueryResponse:
    return QueryResponse(
        answer=answer,
        events=[],
        town=Town(name=slug.title(), slug=slug, timezone="Europe/London"),
    )


class ScriptedClient:
    """Stands in for TownspotClient; replies are keyed by backend query."""

    api_base_url = "https://api.test/api"

    def __init__(self) -> None:
        self.calls: List[Dict[str, str]] = []
        self.replies: Dict[str, Union[QueryResponse, Exception]] = {}
        self.gates: Dict[str, asyncio.Event] = {}

    async def query(
        self,
        session: object,
        query: str,
        town_slug: str,
        locale: str = "en-GB",
        limit: Optional[int] = None,
        conversation: Optional[List[str]] = None,
    ) -> QueryResponse:
        self.calls.append({"query": query, "town_slug": town_slug})
        gate = self.gates.get(f"{town_slug}:{query}")
        if gate is not None:
            await gate.wait()
        reply = self.replies.get(f"{town_slug}:{query}", _response(town_slug))
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def client() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture
def orchestrator(client: ScriptedClient, now: datetime) -> QueryOrchestrator:
    orchestrator = QueryOrchestrator(
        client, session=None, debounce_seconds=0.01, clock=lambda: now
    )
    orchestrator.state.town = TownContext(slug="soho", name="Soho", source="argument")
    return orchestrator


class TestBuildQueryString:
    def test_collapses_whitespace(self) -> None:
        assert build_query_string("  live   music ") == "live music"

    def test_empty_uses_default_phrase(self) -> None:
        assert build_query_string("   ") == DEFAULT_SEARCH_PHRASE
        assert build_query_string(None, TimeWindow.TODAY) == DEFAULT_SEARCH_PHRASE

    def test_appends_hint_without_time_intent(self) -> None:
        assert build_query_string("jazz", TimeWindow.NEXT_3_DAYS) == (
            "jazz in the next 3 days"
        )

    def test_keeps_explicit_time_intent(self) -> None:
        assert build_query_string("jazz tonight", TimeWindow.NEXT_7_DAYS) == (
            "jazz tonight"
        )


def test_request_slot_generations() -> None:
    slot = RequestSlot("events")
    first = slot.begin()
    assert slot.is_current(first)
    second = slot.begin()
    assert not slot.is_current(first)
    assert slot.is_current(second)


class TestStaleResponses:
    @pytest.mark.asyncio
    async def test_stale_response_discarded(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        """A slow earlier query must not overwrite a newer result."""
        old = _response("soho", answer="old")
        new = _response("soho", answer="new")
        client.replies["soho:jazz"] = old
        client.replies["soho:quiz"] = new
        client.gates["soho:jazz"] = asyncio.Event()

        slow = asyncio.ensure_future(orchestrator.run_query("jazz"))
        await asyncio.sleep(0)
        view = await orchestrator.run_query("quiz")
        client.gates["soho:jazz"].set()

        assert await slow is None
        assert view is not None
        assert orchestrator.state.response is new
        assert orchestrator.state.view.answer == "new"
        assert orchestrator.cache["soho"] is new

    @pytest.mark.asyncio
    async def test_stale_error_discarded(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        client.replies["soho:jazz"] = TownspotApiError("boom")
        client.gates["soho:jazz"] = asyncio.Event()

        slow = asyncio.ensure_future(orchestrator.run_query("jazz"))
        await asyncio.sleep(0)
        await orchestrator.run_query("quiz")
        client.gates["soho:jazz"].set()
        await slow

        assert orchestrator.state.error_message == ""
        assert orchestrator.state.response is not None

    @pytest.mark.asyncio
    async def test_stale_town_resolution_discarded(
        self, orchestrator: QueryOrchestrator
    ) -> None:
        gate = asyncio.Event()
        detected = TownContext(slug="camden", name="Camden", source="detected")
        chosen = TownContext(slug="soho", name="Soho", source="argument")

        async def slow_resolve(*args, **kwargs) -> TownContext:
            await gate.wait()
            return detected

        orchestrator.resolver.resolve = AsyncMock(side_effect=slow_resolve)
        slow = asyncio.ensure_future(orchestrator.resolve_town())
        await asyncio.sleep(0)

        orchestrator.resolver.resolve = AsyncMock(return_value=chosen)
        assert await orchestrator.resolve_town("soho") is chosen
        gate.set()

        assert await slow is None
        assert orchestrator.state.town is chosen


class TestDebounce:
    @pytest.mark.asyncio
    async def test_only_last_keystroke_queries(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        for text in ("j", "ja", "jaz", "jazz"):
            orchestrator.set_search_text(text)

        assert client.calls == []
        await orchestrator.wait_for_pending()

        assert client.calls == [{"query": "jazz", "town_slug": "soho"}]
        assert orchestrator.state.search_text == "jazz"

    @pytest.mark.asyncio
    async def test_wait_without_pending(self, orchestrator: QueryOrchestrator) -> None:
        await orchestrator.wait_for_pending()


class TestErrorSurfacing:
    @pytest.mark.asyncio
    async def test_backend_error_becomes_message(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        client.replies["soho:jazz"] = TownspotApiError(
            "TownSpot query failed (500): boom", status=500
        )

        assert await orchestrator.run_query("jazz") is None
        assert orchestrator.state.error_message == "TownSpot query failed (500): boom"
        assert orchestrator.state.loading is False
        assert orchestrator.state.view is None

    @pytest.mark.asyncio
    async def test_configuration_error_becomes_message(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        client.replies["soho:jazz"] = ConfigurationError(
            "TownSpot API Base URL is required."
        )

        await orchestrator.run_query("jazz")
        assert orchestrator.state.error_message == "TownSpot API Base URL is required."

    @pytest.mark.asyncio
    async def test_success_clears_previous_error(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        client.replies["soho:jazz"] = TownspotApiError("boom")
        await orchestrator.run_query("jazz")
        await orchestrator.run_query("quiz")

        assert orchestrator.state.error_message == ""
        assert orchestrator.state.view is not None

    @pytest.mark.asyncio
    async def test_no_town_skips_query(self, client: ScriptedClient) -> None:
        orchestrator = QueryOrchestrator(client, session=None)
        assert await orchestrator.run_query("jazz") is None
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_zone_errors_are_recoverable(
        self, orchestrator: QueryOrchestrator
    ) -> None:
        from townspot.api.zones import ZoneDirectoryError

        orchestrator.zone_directory.fetch_active_zones = AsyncMock(
            side_effect=ZoneDirectoryError("Could not load active towns (500)")
        )
        assert await orchestrator.refresh_zones() == []
        assert orchestrator.state.zones_error == "Could not load active towns (500)"


class TestTownSelection:
    @pytest.mark.asyncio
    async def test_cached_town_published_immediately(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        await orchestrator.select_town("camden")
        first_soho = _response("soho", answer="cached")
        orchestrator.cache["soho"] = first_soho

        fresh = _response("soho", answer="fresh")
        client.replies[f"soho:{DEFAULT_SEARCH_PHRASE}"] = fresh
        client.gates[f"soho:{DEFAULT_SEARCH_PHRASE}"] = asyncio.Event()

        pending = asyncio.ensure_future(orchestrator.select_town("soho"))
        await asyncio.sleep(0)

        assert orchestrator.state.response is first_soho
        assert orchestrator.state.loading is True

        client.gates[f"soho:{DEFAULT_SEARCH_PHRASE}"].set()
        await pending

        assert orchestrator.state.response is fresh
        assert orchestrator.cache["soho"] is fresh
        assert orchestrator.state.loading is False

    @pytest.mark.asyncio
    async def test_auto_selection_resolves_town(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        detected = TownContext(slug="camden", name="Camden", source="detected")
        orchestrator.resolver.resolve = AsyncMock(return_value=detected)
        orchestrator.state.selected_town_slug = "soho"

        await orchestrator.select_town(None)

        assert orchestrator.state.selected_town_slug is None
        assert orchestrator.state.town is detected
        assert client.calls[-1]["town_slug"] == "camden"

    @pytest.mark.asyncio
    async def test_inactive_selection_reset_to_auto(
        self, orchestrator: QueryOrchestrator, sample_zones: List[Zone]
    ) -> None:
        orchestrator.zone_directory.fetch_active_zones = AsyncMock(
            return_value=sample_zones
        )
        orchestrator.state.selected_town_slug = "atlantis"

        await orchestrator.refresh_zones()

        assert orchestrator.state.selected_town_slug is None
        assert orchestrator.state.zones == sample_zones


class TestFilters:
    @pytest.mark.asyncio
    async def test_manual_window_survives_same_query(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        orchestrator.state.search_text = "music tonight"
        orchestrator.choose_time_window(TimeWindow.NEXT_7_DAYS)

        await orchestrator.run_query()

        assert orchestrator.selection.time_window == TimeWindow.NEXT_7_DAYS
        assert orchestrator.selection.category == "Music"
        assert client.calls[-1]["query"] == "music tonight"

    @pytest.mark.asyncio
    async def test_window_hint_added_to_backend_query(
        self, orchestrator: QueryOrchestrator, client: ScriptedClient
    ) -> None:
        orchestrator.state.search_text = "jazz"
        orchestrator.choose_time_window(TimeWindow.TODAY)

        await orchestrator.run_query()

        assert client.calls[-1]["query"] == "jazz today"

    def test_choosing_category_republishes_view(
        self, orchestrator: QueryOrchestrator, sample_response: QueryResponse
    ) -> None:
        orchestrator.state.response = sample_response
        orchestrator.choose_category("Art")

        view = orchestrator.state.view
        assert view is not None
        assert view.categories == [
            "Art",
            "Comedy",
            "Food",
            "Kids",
            "Music",
            "Quiz",
        ]
        assert [section.title for section in view.sections] == ["Tomorrow"]
        assert [event.id for event in view.events] == ["tomorrow"]
        assert view.sections[0].events[0].title == "Life Drawing"

        orchestrator.choose_category(None)
        assert orchestrator.state.view.event_count == 6

    @pytest.mark.asyncio
    async def test_published_view_uses_injected_clock(
        self,
        orchestrator: QueryOrchestrator,
        client: ScriptedClient,
        sample_response: QueryResponse,
    ) -> None:
        client.replies["soho:what's on tonight"] = sample_response

        view = await orchestrator.run_query("what's on tonight")

        assert view is not None
        assert [event.id for event in view.events] == ["live", "soon", "later"]
        assert view.relative_tags == {"live": "NOW", "soon": "in 60m"}


class TestBuildEventView:
    def test_view_for_today(
        self, sample_response: QueryResponse, now: datetime
    ) -> None:
        view = build_event_view(
            sample_response, TimeWindow.TODAY, None, "what's on tonight", now=now
        )

        assert view.town_name == "Kentish Town"
        assert view.timezone == "Europe/London"
        assert [section.title for section in view.sections] == ["Today"]
        assert [event.id for event in view.sections[0].events] == [
            "live",
            "soon",
            "later",
        ]
        assert view.relative_tags == {"live": "NOW", "soon": "in 60m"}
        assert view.summary.title == "3 verified events in Kentish Town"
        assert view.summary.subtitle == "Showing results for tonight."
        assert view.event_count == 3
        assert view.suggestions == ["live music tonight", "free events this week"]

    def test_view_with_category(
        self, sample_response: QueryResponse, now: datetime
    ) -> None:
        view = build_event_view(
            sample_response, TimeWindow.THIS_WEEK, "music", "music", now=now
        )

        assert [section.title for section in view.sections] == [
            "Today",
            "Sunday, 26 Oct",
        ]
        assert view.event_count == 2

    def test_view_falls_back_to_context_name(self, now: datetime) -> None:
        response = QueryResponse(
            answer="", events=[], town=Town(name="", slug="soho")
        )
        view = build_event_view(
            response, TimeWindow.ALL_UPCOMING, None, "", town_name="Soho", now=now
        )

        assert view.town_name == "Soho"
        assert view.sections == []
        assert view.summary.title == "No verified events found in Soho"

    def test_events_without_ids_keep_their_own_tags(self, now: datetime) -> None:
        response = QueryResponse(
            answer="",
            events=[
                Event(id="", title="Market", start_time="2025-10-22T11:30:00Z"),
                Event(id="", title="Story Time", start_time="2025-10-22T13:00:00Z"),
            ],
            town=Town(name="Soho", slug="soho", timezone="Europe/London"),
        )
        view = build_event_view(response, TimeWindow.TODAY, None, "today", now=now)

        assert view.relative_tags == {"#0": "NOW", "#1": "in 60m"}
        assert [view.relative_tag(event) for event in view.events] == [
            "NOW",
            "in 60m",
        ]
        assert view.relative_tag(Event(id="", title="Elsewhere", start_time="")) is None
