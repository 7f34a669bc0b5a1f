from .base import ConfigurationError, TownspotApiError, normalize_api_base_url
from .client import TownspotClient
from .zones import ZoneDirectory, ZoneDirectoryError, fetch_active_zones

__all__ = [
    "ConfigurationError",
    "TownspotApiError",
    "TownspotClient",
    "ZoneDirectory",
    "ZoneDirectoryError",
    "fetch_active_zones",
    "normalize_api_base_url",
]
