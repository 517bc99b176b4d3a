"""
Proximity search ("what is near me").

All three searches share one pipeline:
1. validate inputs (before any I/O),
2. fetch the candidate set, narrowed first by a non-geographic filter when given
   (group roster for members, category for venues),
3. compute distances from the origin,
4. keep candidates with `distance_km <= radius_km`,
5. sort by `(distance_km, id)` so equidistant candidates come out in a stable order,
6. truncate to `limit`,
7. enrich only the kept entries (names, member counts, group memberships).

A stored location whose group or profile no longer exists is an orphan: it is dropped
during enrichment and the next ranked candidate takes its place.

Each call is a stateless read. A failing store or collaborator aborts the whole query
with `StoreError`; partial results are never returned. Enrichment calls run concurrently
and the first failure cancels the rest.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from tontine_geo.collaborators.protocols import (
    GroupRegistry,
    MembershipRoster,
    ProfileDirectory,
    VenueDirectory,
)
from tontine_geo.core.errors import NotFoundError, StoreError, ValidationError
from tontine_geo.core.geo import distance_km
from tontine_geo.domain.models import (
    VENUE_CATEGORIES,
    GroupId,
    Location,
    MeetingVenue,
    NearbyGroup,
    NearbyMember,
    NearbyVenue,
    OwnerId,
    UserId,
    VenueCategory,
)
from tontine_geo.storage.location_store import LocationStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_RADIUS_KM = 10.0
DEFAULT_VENUE_RADIUS_KM = 2.0
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class RankedCandidate(Generic[T]):
    id: OwnerId
    item: T
    location: Location
    distance_km: float


def validate_search(origin: Any, radius_km: Any, limit: Any) -> None:
    """Reject bad search parameters before any I/O happens."""
    if not isinstance(origin, Location):
        raise ValidationError("origin must be a Location")
    if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) or not radius_km > 0:
        raise ValidationError(f"radius_km must be > 0, got {radius_km!r}")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")


def rank_candidates(
    origin: Location,
    candidates: Iterable[tuple[OwnerId, Location, T]],
    *,
    radius_km: float,
    limit: int | None,
) -> list[RankedCandidate[T]]:
    """Distance -> inclusive radius filter -> sort by (distance, id) -> truncate (None keeps all)."""
    within: list[RankedCandidate[T]] = []
    for candidate_id, location, item in candidates:
        d = distance_km(origin, location)
        if d <= radius_km:
            within.append(RankedCandidate(id=candidate_id, item=item, location=location, distance_km=d))
    within.sort(key=lambda c: (c.distance_km, c.id))
    return within if limit is None else within[:limit]


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently; on the first failure cancel the others and re-raise it."""
    tasks = [asyncio.ensure_future(a) for a in aws]
    if not tasks:
        return []
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    pending = [t for t in tasks if not t.done()]
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    # Read every exception so none is reported as "never retrieved".
    errors = [t.exception() for t in tasks if not t.cancelled()]
    errors = [e for e in errors if e is not None]
    if errors:
        raise errors[0]
    return [t.result() for t in tasks]


async def enrich_until(
    ranked: list[RankedCandidate[T]],
    enrich: Callable[[RankedCandidate[T]], Awaitable[R | None]],
    *,
    limit: int,
) -> list[R]:
    """Enrich ranked candidates in order until `limit` results are kept.

    `enrich` returns None for a candidate that must be dropped; only as many further
    candidates as are needed to refill the result get enriched.
    """
    kept: list[R] = []
    start = 0
    while len(kept) < limit and start < len(ranked):
        batch = ranked[start : start + limit - len(kept)]
        start += len(batch)
        enriched = await gather_or_cancel(enrich(c) for c in batch)
        kept.extend(r for r in enriched if r is not None)
    return kept


class ProximitySearchService:
    """Answers nearby-groups / nearby-members / nearby-venues queries."""

    def __init__(
        self,
        *,
        user_locations: LocationStore,
        group_locations: LocationStore,
        venues: VenueDirectory,
        roster: MembershipRoster,
        groups: GroupRegistry,
        profiles: ProfileDirectory,
    ):
        self._user_locations = user_locations
        self._group_locations = group_locations
        self._venues = venues
        self._roster = roster
        self._groups = groups
        self._profiles = profiles

    @staticmethod
    async def _call(what: str, aw: Awaitable[T]) -> T:
        try:
            return await aw
        except StoreError:
            raise
        except Exception as exc:
            logger.warning("%s failed: %s", what, exc)
            raise StoreError(f"{what} failed: {exc}") from exc

    @classmethod
    async def _name_or_none(cls, what: str, aw: Awaitable[str]) -> str | None:
        async def lookup() -> str | None:
            # Unknown owner: an orphan location, not a backend failure.
            try:
                return await aw
            except NotFoundError:
                logger.info("%s: owner no longer exists, skipping candidate", what)
                return None

        return await cls._call(what, lookup())

    async def find_nearby_groups(
        self,
        origin: Location,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = DEFAULT_LIMIT,
    ) -> list[NearbyGroup]:
        validate_search(origin, radius_km, limit)

        locations = await self._call("group location scan", self._group_locations.all_locations())
        ranked = rank_candidates(
            origin,
            ((gid, loc, None) for gid, loc in locations.items()),
            radius_km=radius_km,
            limit=None,
        )
        logger.debug(
            "Nearby groups: %d candidates, %d within %.2f km", len(locations), len(ranked), radius_km
        )
        return await enrich_until(ranked, self._enrich_group, limit=limit)

    async def _enrich_group(self, candidate: RankedCandidate[None]) -> NearbyGroup | None:
        group_id: GroupId = candidate.id
        name, members = await gather_or_cancel(
            [
                self._name_or_none(f"group registry lookup for {group_id!r}", self._groups.name_of(group_id)),
                self._call(f"membership roster for group {group_id!r}", self._roster.active_member_ids(group_id)),
            ]
        )
        if name is None:
            return None
        return NearbyGroup(
            id=group_id,
            name=name,
            distance_km=candidate.distance_km,
            member_count=len(members),
            location=candidate.location,
        )

    async def find_nearby_members(
        self,
        origin: Location,
        group_id: GroupId | None = None,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = DEFAULT_LIMIT,
    ) -> list[NearbyMember]:
        validate_search(origin, radius_km, limit)

        if group_id is not None:
            member_ids = await self._call(
                f"membership roster for group {group_id!r}", self._roster.active_member_ids(group_id)
            )
            locations = await self._call("user location batch read", self._user_locations.list_locations(member_ids))
        else:
            locations = await self._call("user location scan", self._user_locations.all_locations())

        ranked = rank_candidates(
            origin,
            ((uid, loc, None) for uid, loc in locations.items()),
            radius_km=radius_km,
            limit=None,
        )
        logger.debug(
            "Nearby members (group=%r): %d candidates, %d within %.2f km",
            group_id,
            len(locations),
            len(ranked),
            radius_km,
        )
        return await enrich_until(ranked, self._enrich_member, limit=limit)

    async def _enrich_member(self, candidate: RankedCandidate[None]) -> NearbyMember | None:
        user_id: UserId = candidate.id
        name, group_ids = await gather_or_cancel(
            [
                self._name_or_none(f"profile lookup for {user_id!r}", self._profiles.name_of(user_id)),
                self._call(f"membership roster for user {user_id!r}", self._roster.active_group_ids(user_id)),
            ]
        )
        if name is None:
            return None
        return NearbyMember(
            id=user_id,
            name=name,
            distance_km=candidate.distance_km,
            location=candidate.location,
            group_ids=sorted(group_ids),
        )

    async def find_nearby_venues(
        self,
        origin: Location,
        category: VenueCategory | None = None,
        radius_km: float = DEFAULT_VENUE_RADIUS_KM,
        limit: int = DEFAULT_LIMIT,
    ) -> list[NearbyVenue]:
        validate_search(origin, radius_km, limit)
        if category is not None and category not in VENUE_CATEGORIES:
            raise ValidationError(f"category must be one of {', '.join(VENUE_CATEGORIES)}, got {category!r}")

        venues: list[MeetingVenue] = await self._call("venue directory", self._venues.list_venues(category))
        ranked = rank_candidates(
            origin,
            ((v.id, v.location, v) for v in venues),
            radius_km=radius_km,
            limit=limit,
        )
        logger.debug(
            "Nearby venues (category=%r): %d candidates, %d kept within %.2f km",
            category,
            len(venues),
            len(ranked),
            radius_km,
        )
        return [NearbyVenue.from_venue(c.item, distance_km=c.distance_km) for c in ranked]
