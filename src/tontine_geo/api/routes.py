"""
API routes.

Endpoints:
- GET  `/api/health`
- PUT/GET `/api/users/{user_id}/location`, `/api/groups/{group_id}/location`
- GET  `/api/nearby/groups`, `/api/nearby/members`, `/api/nearby/venues`
- POST `/api/geocode`: address -> location (nothing is persisted)

Errors are returned as `{"detail": {"code": ..., "message": ...}}` so clients can tell
"no location set" (404) from "invalid parameters" (400) from "backend down" (502/503).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from functools import lru_cache
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from tontine_geo.config.settings import get_settings
from tontine_geo.core.errors import (
    GeocodingError,
    LocationPermissionError,
    NotFoundError,
    ProximityError,
    StoreError,
    ValidationError,
)
from tontine_geo.domain.models import (
    GroupLocation,
    Location,
    NearbyGroup,
    NearbyMember,
    NearbyVenue,
    UserLocation,
)
from tontine_geo.factory import ProximityServices, build_services

router = APIRouter(prefix="/api")

T = TypeVar("T")

_ERROR_STATUS: list[tuple[type[ProximityError], int]] = [
    (ValidationError, 400),
    (LocationPermissionError, 403),
    (NotFoundError, 404),
    (GeocodingError, 502),
    (StoreError, 503),
]


class LocationPayload(BaseModel):
    latitude: float
    longitude: float
    address: str | None = None
    city: str | None = None
    country: str | None = None
    postal_code: str | None = None


class GeocodeRequest(BaseModel):
    address: str


@lru_cache
def get_services() -> ProximityServices:
    return build_services(get_settings())


def _http_error(exc: ProximityError) -> HTTPException:
    status = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    return HTTPException(status_code=status, detail=exc.as_dict())


async def _run(aw: Awaitable[T], *, timeout_seconds: float | None = None) -> T:
    try:
        if timeout_seconds is None:
            return await aw
        return await asyncio.wait_for(aw, timeout=timeout_seconds)
    except ProximityError as e:
        raise _http_error(e) from e
    except asyncio.TimeoutError as e:
        raise HTTPException(
            status_code=504,
            detail={"code": "SEARCH_TIMEOUT", "message": f"Search exceeded {timeout_seconds}s"},
        ) from e


def _origin(lat: float, lon: float) -> Location:
    try:
        return Location(latitude=lat, longitude=lon)
    except ValidationError as e:
        raise _http_error(e) from e


def _to_location(payload: LocationPayload) -> Location:
    try:
        return Location(**payload.model_dump())
    except ValidationError as e:
        raise _http_error(e) from e


def _effective_limit(limit: int | None, services: ProximityServices) -> int:
    search = services.settings.search
    if limit is None:
        return search.default_limit
    # Non-positive values pass through so the service rejects them with VALIDATION_ERROR.
    return min(limit, search.max_limit)


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.put("/users/{user_id}/location", response_model=UserLocation)
async def put_user_location(
    user_id: str, payload: LocationPayload, services: ProximityServices = Depends(get_services)
):
    """Save (overwrite) a user's location."""
    return await _run(services.user_locations.save_location(user_id, _to_location(payload)))


@router.get("/users/{user_id}/location", response_model=UserLocation)
async def get_user_location(user_id: str, services: ProximityServices = Depends(get_services)):
    return await _run(services.user_locations.get_record(user_id))


@router.put("/groups/{group_id}/location", response_model=GroupLocation)
async def put_group_location(
    group_id: int, payload: LocationPayload, services: ProximityServices = Depends(get_services)
):
    """Save (overwrite) a group's meeting location."""
    return await _run(services.group_locations.save_location(group_id, _to_location(payload)))


@router.get("/groups/{group_id}/location", response_model=GroupLocation)
async def get_group_location(group_id: int, services: ProximityServices = Depends(get_services)):
    return await _run(services.group_locations.get_record(group_id))


@router.get("/nearby/groups", response_model=list[NearbyGroup])
async def nearby_groups(
    lat: float,
    lon: float,
    radius_km: float | None = None,
    limit: int | None = None,
    services: ProximityServices = Depends(get_services),
):
    search = services.settings.search
    return await _run(
        services.search.find_nearby_groups(
            _origin(lat, lon),
            radius_km=radius_km if radius_km is not None else search.default_radius_km,
            limit=_effective_limit(limit, services),
        ),
        timeout_seconds=search.timeout_seconds,
    )


@router.get("/nearby/members", response_model=list[NearbyMember])
async def nearby_members(
    lat: float,
    lon: float,
    group_id: int | None = None,
    radius_km: float | None = None,
    limit: int | None = None,
    services: ProximityServices = Depends(get_services),
):
    search = services.settings.search
    return await _run(
        services.search.find_nearby_members(
            _origin(lat, lon),
            group_id=group_id,
            radius_km=radius_km if radius_km is not None else search.default_radius_km,
            limit=_effective_limit(limit, services),
        ),
        timeout_seconds=search.timeout_seconds,
    )


@router.get("/nearby/venues", response_model=list[NearbyVenue])
async def nearby_venues(
    lat: float,
    lon: float,
    category: str | None = Query(default=None),
    radius_km: float | None = None,
    limit: int | None = None,
    services: ProximityServices = Depends(get_services),
):
    search = services.settings.search
    return await _run(
        services.search.find_nearby_venues(
            _origin(lat, lon),
            category=category,
            radius_km=radius_km if radius_km is not None else search.venue_default_radius_km,
            limit=_effective_limit(limit, services),
        ),
        timeout_seconds=search.timeout_seconds,
    )


@router.post("/geocode", response_model=Location)
async def geocode(request: GeocodeRequest, services: ProximityServices = Depends(get_services)):
    """Resolve an address. The result is not saved; PUT it to a location endpoint to keep it."""
    return await _run(services.geocoder.geocode(request.address))
