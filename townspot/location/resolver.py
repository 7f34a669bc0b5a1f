"""Decide which town's events to query.

Resolution runs an ordered list of steps; the first step that produces a
``TownContext`` wins. Every step swallows its own failures so resolution
always ends with a town, falling back to Kentish Town.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

import aiohttp

from ..api.base import BaseApiClient
from ..api.zones import ZoneDirectory
from ..models import TownContext, Zone
from ..utils.slugs import sanitize_town_slug, town_name_from_slug
from .geo import (
    GEOLOCATION_TIMEOUT_SECONDS,
    IP_LOOKUP_URL,
    IpLocation,
    fetch_ip_location,
    nearest_zone,
)

FALLBACK_TOWN_SLUG = "kentish-town"


@dataclass
class ResolutionState:
    argument_town_slug: str = ""
    default_town_slug: str = ""
    ip_location: Optional[IpLocation] = None


ResolverStep = Callable[
    [aiohttp.ClientSession, ResolutionState], Awaitable[Optional[TownContext]]
]


class PlaceMatcher(BaseApiClient):
    """Reverse-geocodes coordinates to a TownSpot zone."""

    async def match_zone(
        self,
        session: aiohttp.ClientSession,
        lat: float,
        lng: float,
        timeout: float = GEOLOCATION_TIMEOUT_SECONDS,
    ) -> Optional[TownContext]:
        payload = await self.fetch_json(
            session,
            self.endpoint("places/match-zone"),
            params={"lat": str(lat), "lng": str(lng)},
            timeout=aiohttp.ClientTimeout(total=timeout),
        )
        zone = payload.get("zone") if isinstance(payload, dict) else None
        if not isinstance(zone, dict):
            return None

        slug = sanitize_town_slug(zone.get("slug") or "")
        if not slug:
            return None
        name = str(zone.get("name") or "").strip() or town_name_from_slug(slug)
        return TownContext(slug=slug, name=name, source="detected")


class TownResolver:
    def __init__(
        self,
        api_base_url: str,
        zones: Optional[List[Zone]] = None,
        ip_lookup_url: str = IP_LOOKUP_URL,
        timeout: float = GEOLOCATION_TIMEOUT_SECONDS,
    ):
        self.api_base_url = api_base_url
        self.zones = zones
        self.ip_lookup_url = ip_lookup_url
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.steps: List[ResolverStep] = [
            self.from_argument,
            self.from_preference,
            self.from_reverse_geocode,
            self.from_nearest_zone,
        ]

    async def resolve(
        self,
        argument_town_slug: Optional[str] = None,
        default_town_slug: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> TownContext:
        """Run each resolver step in order and stop at the first match."""
        state = ResolutionState(
            argument_town_slug=argument_town_slug or "",
            default_town_slug=default_town_slug or "",
        )
        if session is not None:
            return await self._run_steps(session, state)
        async with aiohttp.ClientSession() as own_session:
            return await self._run_steps(own_session, state)

    async def _run_steps(
        self, session: aiohttp.ClientSession, state: ResolutionState
    ) -> TownContext:
        for step in self.steps:
            try:
                context = await step(session, state)
            except Exception as e:
                step_name = getattr(step, "__name__", repr(step))
                self.logger.warning(f"Town resolution step {step_name} failed: {e}")
                continue
            if context is not None:
                self.logger.info(f"Resolved town {context.slug} ({context.source})")
                return context
        return self.fallback()

    async def from_argument(
        self, session: aiohttp.ClientSession, state: ResolutionState
    ) -> Optional[TownContext]:
        slug = sanitize_town_slug(state.argument_town_slug)
        if not slug:
            return None
        return TownContext(
            slug=slug, name=town_name_from_slug(slug), source="argument"
        )

    async def from_preference(
        self, session: aiohttp.ClientSession, state: ResolutionState
    ) -> Optional[TownContext]:
        slug = sanitize_town_slug(state.default_town_slug)
        if not slug:
            return None
        return TownContext(
            slug=slug, name=town_name_from_slug(slug), source="preference"
        )

    async def from_reverse_geocode(
        self, session: aiohttp.ClientSession, state: ResolutionState
    ) -> Optional[TownContext]:
        state.ip_location = await fetch_ip_location(
            session, self.ip_lookup_url, self.timeout
        )
        if state.ip_location is None:
            return None
        matcher = PlaceMatcher(self.api_base_url)
        return await matcher.match_zone(
            session, state.ip_location.lat, state.ip_location.lng, self.timeout
        )

    async def from_nearest_zone(
        self, session: aiohttp.ClientSession, state: ResolutionState
    ) -> Optional[TownContext]:
        location = state.ip_location
        if location is None:
            return None

        zones = self.zones
        if zones is None:
            directory = ZoneDirectory(self.api_base_url, timeout=self.timeout)
            zones = await directory.fetch_active_zones(session)

        zone = nearest_zone(zones, location.lat, location.lng, location.country_code)
        if zone is None:
            return None
        return TownContext(slug=zone.slug, name=zone.name, source="detected")

    @staticmethod
    def fallback() -> TownContext:
        return TownContext(
            slug=FALLBACK_TOWN_SLUG,
            name=town_name_from_slug(FALLBACK_TOWN_SLUG),
            source="fallback",
        )


async def resolve_town_context(
    argument_town_slug: Optional[str] = None,
    default_town_slug: Optional[str] = None,
    api_base_url: str = "",
    session: Optional[aiohttp.ClientSession] = None,
) -> TownContext:
    """Resolve the town to query; never raises."""
    resolver = TownResolver(api_base_url)
    return await resolver.resolve(argument_town_slug, default_town_slug, session)
