from tontine_geo.collaborators.memory import (
    FixedPositionProvider,
    InMemoryMembershipRoster,
    InMemoryNameDirectory,
    InMemoryVenueDirectory,
)
from tontine_geo.collaborators.protocols import (
    CurrentPositionProvider,
    GroupRegistry,
    MembershipRoster,
    ProfileDirectory,
    VenueDirectory,
)

__all__ = [
    "CurrentPositionProvider",
    "FixedPositionProvider",
    "GroupRegistry",
    "InMemoryMembershipRoster",
    "InMemoryNameDirectory",
    "InMemoryVenueDirectory",
    "MembershipRoster",
    "ProfileDirectory",
    "VenueDirectory",
]
