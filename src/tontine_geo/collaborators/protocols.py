"""
Collaborator protocols.

The proximity core reads membership, names and venues from services it does not own.
These are the call contracts it relies on; concrete implementations live in
`tontine_geo.collaborators.memory` (in-process) and `tontine_geo.backends.postgrest`
(managed backend).
"""

from __future__ import annotations

from typing import Protocol

from tontine_geo.domain.models import GroupId, Location, MeetingVenue, UserId, VenueCategory


class MembershipRoster(Protocol):
    """Active group memberships."""

    async def active_member_ids(self, group_id: GroupId) -> set[UserId]:
        """Users with an active membership in `group_id`."""
        ...

    async def active_group_ids(self, user_id: UserId) -> set[GroupId]:
        """Groups `user_id` is currently an active member of."""
        ...


class GroupRegistry(Protocol):
    async def name_of(self, group_id: GroupId) -> str: ...


class ProfileDirectory(Protocol):
    async def name_of(self, user_id: UserId) -> str: ...


class VenueDirectory(Protocol):
    """Read-only access to meeting venues (created/removed by an admin service)."""

    async def list_venues(self, category: VenueCategory | None = None) -> list[MeetingVenue]: ...


class CurrentPositionProvider(Protocol):
    """Device/browser geolocation.

    Raises `PermissionDenied`, `PositionUnavailable` or `PositionTimeout`.
    """

    async def get_current_position(self) -> Location: ...
