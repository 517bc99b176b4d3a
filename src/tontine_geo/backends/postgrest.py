"""
Managed-backend adapters (PostgREST, as exposed by Supabase).

This module is responsible only for mapping the core's call contracts onto the
application's tables:
- `user_locations` / `group_locations`: one row per owner, upserted on the owner column
- `group_members`: active memberships (`status = 'active'`)
- `tontine_groups.name`, `profiles.full_name`: display names
- `meeting_locations`: venues, tagged by the `type` column

Every transport/HTTP/decoding failure is raised as `StoreError` with the cause chained.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx
import pydantic

from tontine_geo.config.settings import PostgrestSettings
from tontine_geo.core.errors import NotFoundError, StoreError, ValidationError
from tontine_geo.core.http import get_json, post_json
from tontine_geo.domain.models import (
    MEETING_VENUES_ADAPTER,
    GroupId,
    Location,
    LocationRecord,
    MeetingVenue,
    OwnerId,
    UserId,
    VenueCategory,
)
from tontine_geo.storage.location_store import LocationStore, OwnerKind

logger = logging.getLogger(__name__)

LOCATION_COLUMNS = "latitude,longitude,address,city,country,postal_code,updated_at"
VENUE_COLUMNS = (
    "id,name,type,latitude,longitude,address,city,country,postal_code,rating,website,phone_number"
)


def _in_filter(values: Iterable[Any]) -> str:
    parts = []
    for v in values:
        if isinstance(v, str):
            parts.append('"' + v.replace('"', '\\"') + '"')
        else:
            parts.append(str(v))
    return f"in.({','.join(parts)})"


def _location_from_row(row: dict[str, Any]) -> Location:
    return Location(
        latitude=row["latitude"],
        longitude=row["longitude"],
        address=row.get("address"),
        city=row.get("city"),
        country=row.get("country"),
        postal_code=row.get("postal_code"),
    )


class PostgrestClient:
    """Thin table client over the PostgREST HTTP interface."""

    def __init__(
        self,
        settings: PostgrestSettings,
        *,
        timeout_seconds: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not settings.url:
            raise ValueError("postgrest.url is not configured (set SUPABASE_URL)")
        self._settings = settings
        self._base_url = settings.url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def tables(self):
        return self._settings.tables

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept-Profile": self._settings.schema_name,
            "Content-Profile": self._settings.schema_name,
        }
        if self._settings.api_key:
            headers["apikey"] = self._settings.api_key
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        return headers

    async def select(self, table: str, *, columns: str, filters: dict[str, str] | None = None) -> list[dict[str, Any]]:
        params = {"select": columns, **(filters or {})}
        try:
            rows = await get_json(
                f"{self._base_url}/{table}",
                params=params,
                headers=self._headers(),
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreError(f"Reading {table} failed: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreError(f"Reading {table} returned a non-list payload")
        return [r for r in rows if isinstance(r, dict)]

    async def upsert(self, table: str, row: dict[str, Any], *, on_conflict: str) -> None:
        # merge-duplicates updates every column we send; we always send the full row.
        headers = {**self._headers(), "Prefer": "resolution=merge-duplicates,return=minimal"}
        try:
            await post_json(
                f"{self._base_url}/{table}",
                payload=row,
                params={"on_conflict": on_conflict},
                headers=headers,
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreError(f"Upserting into {table} failed: {exc}") from exc


class PostgrestLocationStore(LocationStore):
    """`LocationStore` over the `user_locations` / `group_locations` tables."""

    def __init__(self, client: PostgrestClient, kind: OwnerKind):
        super().__init__(kind)
        self._client = client
        if kind == "user":
            self._table, self._owner_column = client.tables.user_locations, "user_id"
        else:
            self._table, self._owner_column = client.tables.group_locations, "group_id"

    def _record_from_row(self, row: dict[str, Any]) -> LocationRecord:
        try:
            return self._record_type(
                owner_id=row[self._owner_column],
                location=_location_from_row(row),
                updated_at=row["updated_at"],
            )
        except (KeyError, ValidationError, pydantic.ValidationError) as exc:
            raise StoreError(f"Malformed row in {self._table}: {exc}") from exc

    async def _write(self, record: LocationRecord) -> None:
        loc = record.location
        row = {
            self._owner_column: record.owner_id,
            "latitude": loc.latitude,
            "longitude": loc.longitude,
            "address": loc.address,
            "city": loc.city,
            "country": loc.country,
            "postal_code": loc.postal_code,
            "updated_at": record.updated_at.isoformat(),
        }
        await self._client.upsert(self._table, row, on_conflict=self._owner_column)

    async def _select(self, filters: dict[str, str] | None = None) -> dict[OwnerId, LocationRecord]:
        rows = await self._client.select(
            self._table, columns=f"{self._owner_column},{LOCATION_COLUMNS}", filters=filters
        )
        records = [self._record_from_row(r) for r in rows]
        return {rec.owner_id: rec for rec in records}

    async def _read(self, owner_id: OwnerId) -> LocationRecord | None:
        records = await self._select({self._owner_column: f"eq.{owner_id}"})
        return next(iter(records.values()), None)

    async def _read_many(self, owner_ids: set[OwnerId]) -> dict[OwnerId, LocationRecord]:
        return await self._select({self._owner_column: _in_filter(sorted(owner_ids, key=str))})

    async def _read_all(self) -> dict[OwnerId, LocationRecord]:
        return await self._select()


class PostgrestMembershipRoster:
    def __init__(self, client: PostgrestClient):
        self._client = client

    async def active_member_ids(self, group_id: GroupId) -> set[UserId]:
        rows = await self._client.select(
            self._client.tables.group_members,
            columns="user_id",
            filters={"group_id": f"eq.{group_id}", "status": "eq.active"},
        )
        return {r["user_id"] for r in rows if r.get("user_id") is not None}

    async def active_group_ids(self, user_id: UserId) -> set[GroupId]:
        rows = await self._client.select(
            self._client.tables.group_members,
            columns="group_id",
            filters={"user_id": f"eq.{user_id}", "status": "eq.active"},
        )
        return {r["group_id"] for r in rows if r.get("group_id") is not None}


class _PostgrestNameLookup:
    def __init__(self, client: PostgrestClient, *, table: str, column: str, what: str):
        self._client = client
        self._table = table
        self._column = column
        self._what = what

    async def name_of(self, key) -> str:
        rows = await self._client.select(self._table, columns=self._column, filters={"id": f"eq.{key}"})
        if not rows or rows[0].get(self._column) is None:
            raise NotFoundError(f"Unknown {self._what} {key!r}")
        return str(rows[0][self._column])


class PostgrestGroupRegistry(_PostgrestNameLookup):
    def __init__(self, client: PostgrestClient):
        super().__init__(client, table=client.tables.groups, column="name", what="group")


class PostgrestProfileDirectory(_PostgrestNameLookup):
    def __init__(self, client: PostgrestClient):
        super().__init__(client, table=client.tables.profiles, column="full_name", what="user")


class PostgrestVenueDirectory:
    def __init__(self, client: PostgrestClient):
        self._client = client

    async def list_venues(self, category: VenueCategory | None = None) -> list[MeetingVenue]:
        filters = {"type": f"eq.{category}"} if category else None
        rows = await self._client.select(
            self._client.tables.meeting_locations, columns=VENUE_COLUMNS, filters=filters
        )
        payload = []
        for row in rows:
            item = {k: v for k, v in row.items() if v is not None}
            item["category"] = row.get("type")
            item["location"] = {
                k: row.get(k) for k in ("latitude", "longitude", "address", "city", "country", "postal_code")
            }
            payload.append(item)
        try:
            return MEETING_VENUES_ADAPTER.validate_python(payload)
        except (ValidationError, pydantic.ValidationError) as exc:
            raise StoreError(f"Malformed venue row: {exc}") from exc
