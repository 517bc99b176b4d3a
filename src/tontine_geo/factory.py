"""
Service wiring.

Builds the location stores, collaborators, search service and geocoding gateway for the
configured backend, so the API and CLI share one construction path:
- `memory`: everything in-process (seeded from the directory/venue files),
- `file`: locations persisted as JSON under `store.dir`, directory/venues from files,
- `postgrest`: everything read from / written to the managed backend tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from tontine_geo.backends.postgrest import (
    PostgrestClient,
    PostgrestGroupRegistry,
    PostgrestLocationStore,
    PostgrestMembershipRoster,
    PostgrestProfileDirectory,
    PostgrestVenueDirectory,
)
from tontine_geo.collaborators.memory import InMemoryVenueDirectory
from tontine_geo.config.settings import Settings
from tontine_geo.core.env import resolve_project_path
from tontine_geo.ingestion.geocoding import GeocodingGateway
from tontine_geo.search.proximity import ProximitySearchService
from tontine_geo.storage.directory import load_directory
from tontine_geo.storage.location_store import FileLocationStore, InMemoryLocationStore, LocationStore
from tontine_geo.storage.venues import JsonVenueCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProximityServices:
    """Everything the outer surfaces need, built once per process."""

    settings: Settings
    user_locations: LocationStore
    group_locations: LocationStore
    search: ProximitySearchService
    geocoder: GeocodingGateway


def build_services(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> ProximityServices:
    """Wire stores + collaborators for `settings.store.backend`.

    `transport` is handed to every HTTP-backed component (tests pass `httpx.MockTransport`).
    """
    backend = settings.store.backend
    logger.info("Building proximity services (store backend=%s)", backend)

    if backend == "postgrest":
        client = PostgrestClient(
            settings.postgrest,
            timeout_seconds=settings.app.http_timeout_seconds,
            transport=transport,
        )
        user_locations: LocationStore = PostgrestLocationStore(client, "user")
        group_locations: LocationStore = PostgrestLocationStore(client, "group")
        search = ProximitySearchService(
            user_locations=user_locations,
            group_locations=group_locations,
            venues=PostgrestVenueDirectory(client),
            roster=PostgrestMembershipRoster(client),
            groups=PostgrestGroupRegistry(client),
            profiles=PostgrestProfileDirectory(client),
        )
    else:
        if backend == "file":
            store_dir = resolve_project_path(settings.store.dir)
            user_locations = FileLocationStore(store_dir, "user")
            group_locations = FileLocationStore(store_dir, "group")
        else:
            user_locations = InMemoryLocationStore("user")
            group_locations = InMemoryLocationStore("group")

        directory = load_directory(settings.directory.path)
        venues = JsonVenueCatalog(settings.venues.path) if settings.venues.path else InMemoryVenueDirectory()
        search = ProximitySearchService(
            user_locations=user_locations,
            group_locations=group_locations,
            venues=venues,
            roster=directory.roster,
            groups=directory.groups,
            profiles=directory.profiles,
        )

    return ProximityServices(
        settings=settings,
        user_locations=user_locations,
        group_locations=group_locations,
        search=search,
        geocoder=GeocodingGateway(settings, transport=transport),
    )
