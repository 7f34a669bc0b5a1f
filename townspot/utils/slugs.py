import re

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_SLUG_CHARS_RE = re.compile(r"[^a-z0-9-]")
_REPEATED_HYPHENS_RE = re.compile(r"-+")


def sanitize_town_slug(value: object) -> str:
    """Derive a town slug: lowercase, whitespace to hyphens, only [a-z0-9-]."""
    text = str(value or "").lower().strip()
    text = _WHITESPACE_RE.sub("-", text)
    text = _INVALID_SLUG_CHARS_RE.sub("", text)
    return _REPEATED_HYPHENS_RE.sub("-", text)


def town_name_from_slug(slug: str) -> str:
    """Turn "kentish-town" into "Kentish Town"."""
    return " ".join(part[:1].upper() + part[1:] for part in slug.split("-") if part)


def collapse_whitespace(value: object) -> str:
    return _WHITESPACE_RE.sub(" ", str(value or "")).strip()
