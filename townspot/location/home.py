import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from ..models import Zone

logger = logging.getLogger(__name__)


class HomeTownStore:
    """Persists the user's home town as a single zone id in a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[int]:
        if not self.path.exists():
            return None
        try:
            with self.path.open() as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable home town file {self.path}: {e}")
            return None
        zone_id = data.get("home_zone_id") if isinstance(data, dict) else None
        if isinstance(zone_id, bool) or not isinstance(zone_id, int):
            return None
        return zone_id

    def save(self, zone_id: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w") as f:
            json.dump({"home_zone_id": int(zone_id)}, f)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


def resolve_active_town(zones: List[Zone], stored_id: Optional[int]) -> Zone:
    """
    Pick the stored home zone, or the first active zone.

    Raises:
        LookupError: if there are no active zones at all
    """
    if not zones:
        raise LookupError("No active towns are available right now.")
    if stored_id is not None:
        for zone in zones:
            if zone.id == stored_id:
                return zone
    return zones[0]
