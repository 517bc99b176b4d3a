from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tontine_geo.domain.models import Location

"""
Geospatial helpers.

A tiny geometry layer so the search service can rank candidates without pulling in
heavier GIS dependencies. Distances are great-circle (haversine) on a spherical Earth.
"""

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Unrounded great-circle distance in kilometres between two lat/lon pairs."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)

    h = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    # Floating point can push h a hair outside [0, 1] near antipodes.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * atan2(sqrt(h), sqrt(1 - h))


def distance_km(a: Location, b: Location) -> float:
    """Great-circle distance between two locations, in km rounded to 2 decimals."""
    return round(haversine_km(a.latitude, a.longitude, b.latitude, b.longitude), 2)
