from .slugs import collapse_whitespace, sanitize_town_slug, town_name_from_slug
from .timezone_utils import DEFAULT_TIMEZONE, date_key, get_zone, parse_instant

__all__ = [
    "DEFAULT_TIMEZONE",
    "collapse_whitespace",
    "date_key",
    "get_zone",
    "parse_instant",
    "sanitize_town_slug",
    "town_name_from_slug",
]
