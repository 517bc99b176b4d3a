"""
Meeting venue catalog loader.

Outside the managed backend, venues come from a local JSON file (default:
`data/venues.json`) holding a list of venue objects tagged by `category`. We validate it
into the typed venue variants so the search service can assume a consistent shape.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from tontine_geo.core.env import resolve_project_path
from tontine_geo.core.errors import StoreError
from tontine_geo.domain.models import MEETING_VENUES_ADAPTER, MeetingVenue, VenueCategory

logger = logging.getLogger(__name__)


def load_venues(path: str | Path) -> list[MeetingVenue]:
    """Load and validate a venue catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return MEETING_VENUES_ADAPTER.validate_python(payload)


class JsonVenueCatalog:
    """`VenueDirectory` backed by a JSON file, re-read on every call.

    A missing file is an empty catalog; an unreadable or invalid one is a `StoreError`.
    """

    def __init__(self, path: str | Path):
        self._path = resolve_project_path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load_sync(self) -> list[MeetingVenue]:
        if not self._path.exists():
            return []
        return load_venues(self._path)

    async def list_venues(self, category: VenueCategory | None = None) -> list[MeetingVenue]:
        try:
            venues = await asyncio.to_thread(self._load_sync)
        except Exception as exc:
            logger.warning("Failed to load venue catalog %s: %s", self._path, exc)
            raise StoreError(f"Venue catalog {self._path} could not be read: {exc}") from exc
        if category is None:
            return venues
        return [v for v in venues if v.category == category]
