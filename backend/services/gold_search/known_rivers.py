"""Pre-validated sites for a few well-documented places (offline demos and tests)."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from models.gold_sites import SearchResultSet, TierMode
from services.gold_search.response_validator import validate

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE_PATH = Path(__file__).parent / "data" / "known_rivers.json"


class KnownRiversSource:
    """Maps a lower-cased place name to a standard-mode result payload.

    Pass ``data`` directly (tests) or let it load ``path`` on first use.
    """

    def __init__(
        self, data: Optional[Dict[str, Any]] = None, path: Path = DEFAULT_FIXTURE_PATH
    ):
        self._data = {k.lower(): v for k, v in data.items()} if data is not None else None
        self.path = path

    @property
    def data(self) -> Dict[str, Any]:
        if self._data is None:
            with open(self.path, encoding="utf-8") as f:
                self._data = {k.lower(): v for k, v in json.load(f).items()}
            logger.info(f"Loaded known rivers for {len(self._data)} places from {self.path}")
        return self._data

    def places(self):
        return sorted(self.data)

    def lookup(
        self, place_name: str, tier_mode: TierMode = TierMode.STANDARD
    ) -> Optional[SearchResultSet]:
        """Validated result set for the place, or None if it is not in the fixture."""
        if tier_mode != TierMode.STANDARD:
            return None
        entry = self.data.get(place_name.strip().lower())
        if entry is None:
            return None
        result = validate(json.dumps(entry), tier_mode, place_name)
        # Fixture data is exhaustive
        result.has_more_results = False
        return result
