import pydantic
import pytest

from tontine_geo.core.errors import ValidationError
from tontine_geo.domain.models import (
    MEETING_VENUES_ADAPTER,
    CafeVenue,
    Location,
    NearbyVenue,
    OfficeVenue,
    OtherVenue,
    RestaurantVenue,
)


@pytest.mark.parametrize(
    "lat,lon",
    [(91, 0), (-90.0001, 0), (0, 181), (0, -180.5), (float("nan"), 0), (0, float("nan"))],
)
def test_location_rejects_out_of_range_coordinates(lat, lon):
    with pytest.raises(ValidationError):
        Location(latitude=lat, longitude=lon)


def test_location_accepts_boundaries():
    for lat, lon in [(90, 180), (-90, -180), (0, 0)]:
        loc = Location(latitude=lat, longitude=lon)
        assert (loc.latitude, loc.longitude) == (lat, lon)


def test_location_is_immutable():
    loc = Location(latitude=1, longitude=2, city="Dakar")
    with pytest.raises(pydantic.ValidationError):
        loc.latitude = 3


def test_location_non_numeric_input_is_a_type_error_from_pydantic():
    with pytest.raises(pydantic.ValidationError):
        Location(latitude="north", longitude=0)


def test_venues_are_tagged_by_category():
    venues = MEETING_VENUES_ADAPTER.validate_python(
        [
            {"id": 1, "name": "R", "category": "restaurant", "location": {"latitude": 0, "longitude": 0}, "rating": 4},
            {"id": 2, "name": "C", "category": "cafe", "location": {"latitude": 0, "longitude": 0}},
            {"id": 3, "name": "O", "category": "office", "location": {"latitude": 0, "longitude": 0}},
            {"id": 4, "name": "X", "category": "other", "location": {"latitude": 0, "longitude": 0}},
        ]
    )
    assert [type(v) for v in venues] == [RestaurantVenue, CafeVenue, OfficeVenue, OtherVenue]
    assert not hasattr(venues[2], "rating")


def test_unknown_venue_category_is_rejected():
    with pytest.raises(pydantic.ValidationError):
        MEETING_VENUES_ADAPTER.validate_python(
            [{"id": 1, "name": "B", "category": "bar", "location": {"latitude": 0, "longitude": 0}}]
        )


def test_nearby_venue_flattens_category_fields():
    office = OfficeVenue(id=3, name="Cowork", location=Location(latitude=0, longitude=0), website="https://x.test")
    nearby = NearbyVenue.from_venue(office, distance_km=1.25)
    assert nearby.category == "office"
    assert nearby.rating is None
    assert nearby.website == "https://x.test"
    assert nearby.distance_km == 1.25
