"""Geospatial proximity for savings groups: distances, stored locations, geocoding, nearby search."""

from tontine_geo.core.errors import (
    GeocodingError,
    LocationPermissionError,
    NotFoundError,
    ProximityError,
    StoreError,
    ValidationError,
)
from tontine_geo.core.geo import distance_km
from tontine_geo.domain.models import Location, NearbyGroup, NearbyMember, NearbyVenue
from tontine_geo.search.proximity import ProximitySearchService

__version__ = "0.1.0"

__all__ = [
    "GeocodingError",
    "Location",
    "LocationPermissionError",
    "NearbyGroup",
    "NearbyMember",
    "NearbyVenue",
    "NotFoundError",
    "ProximityError",
    "ProximitySearchService",
    "StoreError",
    "ValidationError",
    "distance_km",
]
