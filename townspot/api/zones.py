"""Directory of active TownSpot towns ("zones").

Only the canonical list endpoints are queried; hidden or inactive towns are
excluded using the explicit ``hidden`` / ``active`` flags on each record.
"""

from typing import Any, Dict, List, Optional

import aiohttp

from ..models import Zone
from ..models.response import to_float
from ..utils.slugs import sanitize_town_slug
from .base import BaseApiClient, MalformedResponseError, TownspotApiError

ZONE_LIST_PATHS = ["locations/list", "list"]


class ZoneDirectoryError(TownspotApiError):
    """Raised when no directory endpoint returned a usable response."""


def _to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def zone_from_record(raw: Any) -> Optional[Zone]:
    """Validate one raw directory record; None when it must be excluded."""
    if not isinstance(raw, dict):
        return None

    zone_id = _to_int(raw.get("id"))
    slug = sanitize_town_slug(raw.get("slug") or "")
    name = str(raw.get("name") or "").strip()

    if zone_id is None or not slug or not name:
        return None
    if raw.get("hidden") is True or raw.get("active") is False:
        return None

    country_code = _first(raw, "country_code", "countryCode")
    return Zone(
        id=zone_id,
        name=name,
        slug=slug,
        country_code=str(country_code).upper() if country_code else None,
        active_users=_to_int(_first(raw, "active_users", "activeUsers")),
        weekly_events_count=_to_int(
            _first(raw, "weekly_events_count", "weeklyEventsCount")
        ),
        lat=to_float(_first(raw, "lat", "latitude")),
        lng=to_float(_first(raw, "lng", "lon", "longitude")),
    )


def normalize_zones(payload: Any) -> List[Zone]:
    """Validate, de-duplicate by slug and sort records by name."""
    records = payload if isinstance(payload, list) else []
    zones: List[Zone] = []
    seen_slugs = set()
    for raw in records:
        zone = zone_from_record(raw)
        if zone is None or zone.slug in seen_slugs:
            continue
        seen_slugs.add(zone.slug)
        zones.append(zone)
    return sorted(zones, key=lambda zone: zone.name.casefold())


class ZoneDirectory(BaseApiClient):
    def __init__(self, api_base_url: str, timeout: Optional[float] = None):
        super().__init__(api_base_url)
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    def candidate_endpoints(self) -> List[str]:
        return [self.endpoint(path) for path in ZONE_LIST_PATHS]

    async def fetch_active_zones(self, session: aiohttp.ClientSession) -> List[Zone]:
        """
        Fetch the active towns from the first endpoint that answers 2xx.

        Raises:
            ZoneDirectoryError: if every candidate endpoint failed
        """
        last_status: Optional[int] = None
        for endpoint in self.candidate_endpoints():
            try:
                payload = await self.fetch_json(session, endpoint, timeout=self.timeout)
            except MalformedResponseError as e:
                self.logger.warning(f"Ignoring malformed zone list: {e}")
                return []
            except TownspotApiError as e:
                last_status = e.status
                self.logger.debug(f"Zone endpoint {endpoint} failed: {e}")
                continue

            zones = normalize_zones(payload)
            self.logger.info(f"Loaded {len(zones)} active towns from {endpoint}")
            return zones

        raise ZoneDirectoryError(
            f"Could not load active towns ({last_status or 'network'})",
            status=last_status,
        )


async def fetch_active_zones(
    api_base_url: str, session: Optional[aiohttp.ClientSession] = None
) -> List[Zone]:
    """Convenience wrapper that opens a session when none is supplied."""
    directory = ZoneDirectory(api_base_url)
    if session is not None:
        return await directory.fetch_active_zones(session)
    async with aiohttp.ClientSession() as own_session:
        return await directory.fetch_active_zones(own_session)
