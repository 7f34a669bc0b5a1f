from .geo import IpLocation, fetch_ip_location, haversine_km, nearest_zone
from .home import HomeTownStore, resolve_active_town
from .resolver import FALLBACK_TOWN_SLUG, TownResolver, resolve_town_context

__all__ = [
    "FALLBACK_TOWN_SLUG",
    "HomeTownStore",
    "IpLocation",
    "TownResolver",
    "fetch_ip_location",
    "haversine_km",
    "nearest_zone",
    "resolve_active_town",
    "resolve_town_context",
]
