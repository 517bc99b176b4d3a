"""
Domain models (Pydantic).

These types are the stable contract between layers:
- the `Location` value type (validated coordinates + optional address parts)
- persisted per-owner records (`UserLocation`, `GroupLocation`)
- meeting venues, as a tagged variant per category
- transient search results (`NearbyGroup`, `NearbyMember`, `NearbyVenue`)

Keeping them in one place gives us early validation and consistent JSON output
across the library, the API and the CLI.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from tontine_geo.core.errors import ValidationError

UserId = str
GroupId = int
VenueId = int
OwnerId = Union[int, str]

VenueCategory = Literal["restaurant", "cafe", "office", "other"]
VENUE_CATEGORIES: tuple[str, ...] = ("restaurant", "cafe", "office", "other")


def _coerce_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Location(BaseModel):
    """A point in decimal degrees, plus address parts when geocoded or user-entered."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str | None = None
    city: str | None = None
    country: str | None = None
    postal_code: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _check_range(cls, data: Any) -> Any:
        # Raised as our own ValidationError (not pydantic's) so callers see one error type.
        # Non-numeric input is left to pydantic's own type validation.
        if not isinstance(data, dict):
            return data
        lat = _coerce_float(data.get("latitude"))
        lon = _coerce_float(data.get("longitude"))
        if lat is not None and not -90 <= lat <= 90:
            raise ValidationError(f"latitude must be within [-90, 90], got {lat}")
        if lon is not None and not -180 <= lon <= 180:
            raise ValidationError(f"longitude must be within [-180, 180], got {lon}")
        return data


class LocationRecord(BaseModel):
    """One persisted location per owner. Saves overwrite; there is no history."""

    owner_id: OwnerId
    location: Location
    updated_at: datetime


class UserLocation(LocationRecord):
    owner_id: UserId


class GroupLocation(LocationRecord):
    owner_id: GroupId


class _VenueBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: VenueId
    name: str
    location: Location


class RestaurantVenue(_VenueBase):
    category: Literal["restaurant"] = "restaurant"
    rating: float | None = Field(default=None, ge=0, le=5)
    website: str | None = None
    phone_number: str | None = None


class CafeVenue(_VenueBase):
    category: Literal["cafe"] = "cafe"
    rating: float | None = Field(default=None, ge=0, le=5)
    website: str | None = None
    phone_number: str | None = None


class OfficeVenue(_VenueBase):
    category: Literal["office"] = "office"
    website: str | None = None
    phone_number: str | None = None


class OtherVenue(_VenueBase):
    category: Literal["other"] = "other"
    website: str | None = None


MeetingVenue = Annotated[
    Union[RestaurantVenue, CafeVenue, OfficeVenue, OtherVenue],
    Field(discriminator="category"),
]

MEETING_VENUES_ADAPTER = TypeAdapter(list[MeetingVenue])


class NearbyGroup(BaseModel):
    id: GroupId
    name: str
    distance_km: float
    member_count: int
    location: Location


class NearbyMember(BaseModel):
    id: UserId
    name: str
    distance_km: float
    location: Location
    group_ids: list[GroupId] = Field(default_factory=list)


class NearbyVenue(BaseModel):
    """A venue within the search radius, flattened for display."""

    id: VenueId
    name: str
    location: Location
    category: VenueCategory
    rating: float | None = None
    website: str | None = None
    phone_number: str | None = None
    distance_km: float

    @classmethod
    def from_venue(cls, venue: MeetingVenue, *, distance_km: float) -> "NearbyVenue":
        return cls(
            id=venue.id,
            name=venue.name,
            location=venue.location,
            category=venue.category,
            rating=getattr(venue, "rating", None),
            website=getattr(venue, "website", None),
            phone_number=getattr(venue, "phone_number", None),
            distance_km=distance_km,
        )
