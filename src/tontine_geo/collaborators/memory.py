"""
In-process collaborator implementations.

Used by tests and by the `memory`/`file` store backends, where membership and names
are seeded by the caller instead of read from the managed backend.
"""

from __future__ import annotations

from collections.abc import Iterable

from tontine_geo.core.errors import (
    LocationPermissionError,
    NotFoundError,
    PermissionDenied,
)
from tontine_geo.domain.models import GroupId, Location, MeetingVenue, UserId, VenueCategory


class InMemoryMembershipRoster:
    def __init__(self, memberships: dict[GroupId, Iterable[UserId]] | None = None):
        self._members: dict[GroupId, set[UserId]] = {}
        for group_id, user_ids in (memberships or {}).items():
            for user_id in user_ids:
                self.add_member(group_id, user_id)

    def add_member(self, group_id: GroupId, user_id: UserId) -> None:
        self._members.setdefault(group_id, set()).add(user_id)

    def remove_member(self, group_id: GroupId, user_id: UserId) -> None:
        self._members.get(group_id, set()).discard(user_id)

    async def active_member_ids(self, group_id: GroupId) -> set[UserId]:
        return set(self._members.get(group_id, ()))

    async def active_group_ids(self, user_id: UserId) -> set[GroupId]:
        return {g for g, members in self._members.items() if user_id in members}


class InMemoryNameDirectory:
    """Id -> display name lookup; serves as both `GroupRegistry` and `ProfileDirectory`."""

    def __init__(self, names: dict | None = None, *, what: str = "entity"):
        self._names = dict(names or {})
        self._what = what

    def set_name(self, key, name: str) -> None:
        self._names[key] = name

    async def name_of(self, key) -> str:
        try:
            return self._names[key]
        except KeyError:
            raise NotFoundError(f"Unknown {self._what} {key!r}") from None


class InMemoryVenueDirectory:
    def __init__(self, venues: Iterable[MeetingVenue] = ()):
        self._venues = list(venues)

    async def list_venues(self, category: VenueCategory | None = None) -> list[MeetingVenue]:
        if category is None:
            return list(self._venues)
        return [v for v in self._venues if v.category == category]


class FixedPositionProvider:
    """Deterministic `CurrentPositionProvider`: a fixed location, or a fixed failure."""

    def __init__(self, location: Location | None = None, *, error: LocationPermissionError | None = None):
        if location is None and error is None:
            error = PermissionDenied("No position configured")
        self._location = location
        self._error = error

    async def get_current_position(self) -> Location:
        if self._error is not None:
            raise self._error
        return self._location
