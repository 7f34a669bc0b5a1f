import re
from typing import Optional
from urllib.parse import quote, urlsplit

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_EVENT_PATH_RE = re.compile(r"^/event/([^/]+)$", re.IGNORECASE)


def normalize_event_url(raw_url: str) -> str:
    """
    Rewrite "/event/<slug>" links to the public "/<slug>" form.

    Links whose last segment carries a UUID, links with another shape and
    anything that does not parse as an absolute URL are returned unchanged.
    """
    try:
        parsed = urlsplit(raw_url)
    except ValueError:
        return raw_url
    if not parsed.scheme or not parsed.netloc:
        return raw_url

    match = _EVENT_PATH_RE.match(parsed.path)
    if not match:
        return raw_url

    slug_or_uuid = match.group(1)
    if _UUID_RE.search(slug_or_uuid):
        return raw_url

    return f"{parsed.scheme}://{parsed.netloc}/{slug_or_uuid}"


def google_maps_url(lat: float, lng: float, label: Optional[str] = None) -> str:
    query = f"{lat},{lng} ({label})" if label else f"{lat},{lng}"
    return f"https://www.google.com/maps/search/?api=1&query={quote(query, safe='')}"


def apple_maps_url(lat: float, lng: float, label: Optional[str] = None) -> str:
    query = label or f"{lat},{lng}"
    return (
        f"https://maps.apple.com/?ll={quote(f'{lat},{lng}', safe='')}"
        f"&q={quote(query, safe='')}"
    )
