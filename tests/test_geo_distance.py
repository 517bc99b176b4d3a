import math

import pytest

from tontine_geo.core.geo import distance_km, haversine_km
from tontine_geo.domain.models import Location

PARIS = Location(latitude=48.8566, longitude=2.3522)
LONDON = Location(latitude=51.5074, longitude=-0.1278)

SAMPLE_POINTS = [
    PARIS,
    LONDON,
    Location(latitude=0, longitude=0),
    Location(latitude=90, longitude=0),
    Location(latitude=-90, longitude=45),
    Location(latitude=12.3714, longitude=-1.5197),  # Ouagadougou
    Location(latitude=-33.8688, longitude=151.2093),
    Location(latitude=10, longitude=180),
    Location(latitude=-10, longitude=-180),
]


def test_distance_to_self_is_zero():
    for p in SAMPLE_POINTS:
        assert distance_km(p, p) == 0


def test_distance_is_symmetric():
    for a in SAMPLE_POINTS:
        for b in SAMPLE_POINTS:
            assert distance_km(a, b) == distance_km(b, a)


def test_distance_is_finite_and_non_negative_everywhere():
    for a in SAMPLE_POINTS:
        for b in SAMPLE_POINTS:
            d = distance_km(a, b)
            assert not math.isnan(d)
            assert d >= 0


def test_paris_london():
    assert 343 <= distance_km(PARIS, LONDON) <= 345


def test_antipodal_points_are_half_the_circumference():
    a = Location(latitude=0, longitude=0)
    b = Location(latitude=0, longitude=180)
    assert distance_km(a, b) == pytest.approx(20015.09, abs=0.5)

    north = Location(latitude=90, longitude=0)
    south = Location(latitude=-90, longitude=0)
    assert distance_km(north, south) == pytest.approx(20015.09, abs=0.5)

    # Antimeridian crossing: +179.5 and -179.5 are 1 degree of longitude apart.
    east = Location(latitude=0, longitude=179.5)
    west = Location(latitude=0, longitude=-179.5)
    assert distance_km(east, west) == pytest.approx(111.19, abs=0.01)


def test_distance_is_rounded_to_two_decimals():
    d = distance_km(PARIS, LONDON)
    assert d == round(d, 2)
    assert haversine_km(PARIS.latitude, PARIS.longitude, LONDON.latitude, LONDON.longitude) != d
