import asyncio
import json
from typing import List, Optional
from urllib.parse import quote

import aiohttp

from ..models import EventDetails, QueryResponse
from ..utils.slugs import collapse_whitespace, sanitize_town_slug
from .base import BaseApiClient, TownspotApiError

DEFAULT_QUERY = "what's on"
DEFAULT_LOCALE = "en-GB"
DEFAULT_LIMIT = 8


def sanitize_query(query: Optional[str]) -> str:
    return collapse_whitespace(query) or DEFAULT_QUERY


def sanitize_locale(locale: Optional[str]) -> str:
    return str(locale or DEFAULT_LOCALE).strip() or DEFAULT_LOCALE


class TownspotClient(BaseApiClient):
    """Client for the TownSpot backend: event queries, details and waitlist."""

    async def query(
        self,
        session: aiohttp.ClientSession,
        query: str,
        town_slug: str,
        locale: str = DEFAULT_LOCALE,
        limit: Optional[int] = None,
        conversation: Optional[List[str]] = None,
    ) -> QueryResponse:
        """
        Ask the backend for events matching a free-text query in a town.

        Raises:
            TownspotApiError: if the backend is unreachable or answers non-2xx
        """
        endpoint = self.endpoint("raycast/query")
        slug = sanitize_town_slug(town_slug)
        body = {
            "query": sanitize_query(query),
            "townSlug": slug,
            "locale": sanitize_locale(locale),
            "limit": limit or DEFAULT_LIMIT,
            "conversation": conversation or [],
        }

        self.logger.info(f"Querying {endpoint} for '{body['query']}' in {slug}")
        try:
            async with session.post(
                endpoint,
                json=body,
                headers={"Accept": "application/json"},
            ) as response:
                text = await response.text()
                if not 200 <= response.status < 300:
                    raise TownspotApiError(
                        f"TownSpot query failed ({response.status}): "
                        f"{text.strip() or response.reason or 'no details'}",
                        endpoint=endpoint,
                        status=response.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            details = str(e) or e.__class__.__name__
            raise TownspotApiError(
                f"Could not reach TownSpot at {endpoint}. Ensure the server is "
                f"running and reachable. ({details})",
                endpoint=endpoint,
            ) from e

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise TownspotApiError(
                f"TownSpot returned malformed JSON from {endpoint}",
                endpoint=endpoint,
            ) from e
        if not isinstance(payload, dict):
            raise TownspotApiError(
                f"TownSpot returned an unexpected payload from {endpoint}",
                endpoint=endpoint,
            )

        result = QueryResponse.from_dict(payload, town_slug=slug)
        self.logger.info(f"Received {len(result.events)} events for {slug}")
        return result

    def _detail_endpoints(self, event_uuid: str) -> List[str]:
        bases = [self.api_base_url]
        if "localhost" in self.api_base_url:
            bases.append(self.api_base_url.replace("localhost", "127.0.0.1"))

        encoded = quote(event_uuid, safe="")
        endpoints: List[str] = []
        for base in bases:
            endpoints.append(f"{base}/events/get?eventUuid={encoded}")
            if not base.endswith("/api"):
                endpoints.append(f"{base}/api/events/get?eventUuid={encoded}")
        return endpoints

    async def fetch_event_details(
        self, session: aiohttp.ClientSession, event_uuid: str
    ) -> EventDetails:
        """Load one event's details, trying each candidate endpoint in turn."""
        last_error: Optional[str] = None
        for endpoint in self._detail_endpoints(event_uuid):
            try:
                payload = await self.fetch_json(session, endpoint)
            except TownspotApiError as e:
                last_error = f"status {e.status}" if e.status else str(e)
                self.logger.debug(f"Event details unavailable at {endpoint}: {e}")
                continue
            if isinstance(payload, dict):
                return EventDetails.from_dict(payload)
            last_error = "unexpected payload"

        raise TownspotApiError(
            f"Unable to load event details ({last_error or 'unknown error'})"
        )

    async def submit_waitlist(
        self,
        session: aiohttp.ClientSession,
        endpoint_url: str,
        email: str,
        location: str,
        message: Optional[str] = None,
    ) -> None:
        default_error = "Something went wrong. Please try again."
        body = {
            "email": email.strip(),
            "location": location.strip(),
            "message": (message or "").strip() or None,
            "honeypot": "",
        }
        try:
            async with session.post(
                endpoint_url, json=body, headers={"Accept": "application/json"}
            ) as response:
                if response.status == 429:
                    raise TownspotApiError(
                        "Too many submissions. Please try again later.",
                        endpoint=endpoint_url,
                        status=429,
                    )
                if not 200 <= response.status < 300:
                    try:
                        details = await response.json(content_type=None)
                    except (json.JSONDecodeError, aiohttp.ContentTypeError):
                        details = None
                    error_message = default_error
                    if isinstance(details, dict):
                        error_message = (
                            details.get("message")
                            or details.get("error")
                            or default_error
                        )
                    raise TownspotApiError(
                        error_message, endpoint=endpoint_url, status=response.status
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TownspotApiError(
                f"Network error submitting to {endpoint_url}: {str(e)}",
                endpoint=endpoint_url,
            ) from e
