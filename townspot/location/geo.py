"""Geographic helpers: great-circle distance, nearest town and IP lookup."""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

import aiohttp

from ..models import Zone
from ..models.response import to_float

EARTH_RADIUS_KM = 6371.0
IP_LOOKUP_URL = "https://ipapi.co/json/"
GEOLOCATION_TIMEOUT_SECONDS = 1.6

logger = logging.getLogger(__name__)


@dataclass
class IpLocation:
    lat: float
    lng: float
    country_code: Optional[str] = None


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def nearest_zone(
    zones: Iterable[Zone],
    lat: float,
    lng: float,
    country_code: Optional[str] = None,
) -> Optional[Zone]:
    """
    Find the zone closest to a point.

    Zones without coordinates are ignored. When country_code is given and at
    least one zone shares it, only those zones are considered. Ties go to the
    zone listed first.

    Args:
        zones: Candidate zones in directory order
        lat: Latitude of the point
        lng: Longitude of the point
        country_code: Optional ISO country code of the point

    Returns:
        The nearest zone, or None when no zone has coordinates
    """
    candidates = [zone for zone in zones if zone.has_coordinates]
    if country_code:
        wanted = country_code.upper()
        same_country = [
            zone for zone in candidates if (zone.country_code or "").upper() == wanted
        ]
        if same_country:
            candidates = same_country

    best: Optional[Zone] = None
    best_distance = math.inf
    for zone in candidates:
        assert zone.lat is not None and zone.lng is not None
        distance = haversine_km(lat, lng, zone.lat, zone.lng)
        if distance < best_distance:
            best = zone
            best_distance = distance
    return best


async def fetch_ip_location(
    session: aiohttp.ClientSession,
    url: str = IP_LOOKUP_URL,
    timeout: float = GEOLOCATION_TIMEOUT_SECONDS,
) -> Optional[IpLocation]:
    """Look up the caller's approximate location; None on any failure."""
    try:
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            if not 200 <= response.status < 300:
                logger.debug(f"IP lookup failed with HTTP {response.status}")
                return None
            payload = await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.debug(f"IP lookup failed: {e!r}")
        return None

    if not isinstance(payload, dict):
        return None

    raw_lat = payload.get("latitude")
    raw_lng = payload.get("longitude")
    lat = to_float(raw_lat if raw_lat is not None else payload.get("lat"))
    lng = to_float(raw_lng if raw_lng is not None else payload.get("lon"))
    if lat is None or lng is None:
        return None

    country_code = payload.get("country_code") or payload.get("countryCode")
    return IpLocation(
        lat=lat,
        lng=lng,
        country_code=str(country_code).upper() if country_code else None,
    )
