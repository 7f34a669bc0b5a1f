"""Settings for the TownSpot client.

Values come from three layers, later ones winning: built-in defaults, an
optional JSON settings file (validated against a JSON schema), and
environment variables (a ``.env`` file is loaded first).
"""

from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema
from dotenv import load_dotenv

from ..api.base import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "settings.schema.json"

DEFAULT_API_BASE_URL = "https://api.townspot.co/api"
DEFAULT_LOCALE = "en-GB"
DEFAULT_HOME_FILE = "~/.config/townspot/home.json"
DEFAULT_DEBOUNCE_SECONDS = 0.35

ENV_VARS = {
    "api_base_url": "TOWNSPOT_API_BASE_URL",
    "locale": "TOWNSPOT_LOCALE",
    "default_town_slug": "TOWNSPOT_DEFAULT_TOWN",
    "home_file": "TOWNSPOT_HOME_FILE",
    "waitlist_url": "TOWNSPOT_WAITLIST_URL",
}


@dataclass
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    locale: str = DEFAULT_LOCALE
    default_town_slug: str = ""
    home_file: str = DEFAULT_HOME_FILE
    limit: int = 8
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    waitlist_url: str = ""                     # empty means "{api_base_url}/waitlist"


def _validate_schema(data: Dict[str, Any], path: Path) -> None:
    with _SCHEMA_PATH.open() as f:
        schema = json.load(f)
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as exc:
        raise ConfigurationError(
            f"Settings file '{path}' failed schema validation: {exc.message}"
        ) from exc


def _load_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(config_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    try:
        with path.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Settings file '{path}' is not valid JSON") from exc
    _validate_schema(data, path)
    return data


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Build Settings from defaults, an optional JSON file and the environment.

    Args:
        config_path: Optional path to a JSON settings file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Populated Settings

    Raises:
        FileNotFoundError: if config_path does not exist
        ConfigurationError: if the file is invalid
    """
    settings = Settings()
    if config_path:
        settings = replace(settings, **_load_file(config_path))
        logger.debug(f"Loaded settings from {config_path}")

    env = os.environ if environ is None else environ
    overrides = {
        field_name: env[var]
        for field_name, var in ENV_VARS.items()
        if env.get(var, "").strip()
    }
    return replace(settings, **overrides)
