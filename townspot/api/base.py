import asyncio
import json
import logging
import re
from typing import Any, Optional

import aiohttp

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


class ConfigurationError(ValueError):
    """Raised when required configuration (e.g. the API base URL) is unusable."""


class TownspotApiError(Exception):
    """A network or backend failure talking to a TownSpot endpoint."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status = status

    def __str__(self) -> str:
        return self.message

    def to_user_message(self) -> str:
        return self.message


class MalformedResponseError(TownspotApiError):
    """The endpoint answered 2xx but the body was not valid JSON."""


def normalize_api_base_url(api_base_url: Optional[str]) -> str:
    """
    Normalize the configured API base URL.

    A value without a scheme gets "http://"; trailing slashes are dropped.

    Raises:
        ConfigurationError: if the base URL is empty
    """
    value = str(api_base_url or "").strip()
    if not value:
        raise ConfigurationError("TownSpot API Base URL is required.")
    if not _SCHEME_RE.match(value):
        value = f"http://{value}"
    return value.rstrip("/")


class BaseApiClient:
    def __init__(self, api_base_url: str):
        self.api_base_url = normalize_api_base_url(api_base_url)
        self.logger = logging.getLogger(self.__class__.__name__)

    def endpoint(self, path: str) -> str:
        return f"{self.api_base_url}/{path.lstrip('/')}"

    async def fetch_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        method: str = "GET",
        payload: Optional[Any] = None,
        params: Optional[dict] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
    ) -> Any:
        """
        Fetch a JSON document with error handling.

        Raises:
            TownspotApiError: on network failure, timeout or a non-2xx status
        """
        self.logger.debug(f"{method} {url}")
        request_kwargs: dict = {"headers": {"Accept": "application/json"}}
        if payload is not None:
            request_kwargs["json"] = payload
        if params:
            request_kwargs["params"] = params
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            async with session.request(method, url, **request_kwargs) as response:
                if not 200 <= response.status < 300:
                    details = await response.text()
                    raise TownspotApiError(
                        f"HTTP {response.status}: {url}"
                        + (f" ({details.strip()})" if details.strip() else ""),
                        endpoint=url,
                        status=response.status,
                    )
                body = await response.text()
        except aiohttp.ClientError as e:
            raise TownspotApiError(
                f"Network error fetching {url}: {str(e)}", endpoint=url
            ) from e
        except asyncio.TimeoutError as e:
            raise TownspotApiError(f"Timed out fetching {url}", endpoint=url) from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"Malformed JSON from {url}: {str(e)}", endpoint=url
            ) from e
