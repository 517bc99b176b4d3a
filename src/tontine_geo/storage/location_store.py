"""
Per-owner location persistence.

A `LocationStore` keeps exactly one `Location` per owner (a user or a group):
- saves are full overwrites (last-write-wins, no field merge, no history),
- reads of a missing owner raise `NotFoundError`,
- batch reads silently omit owners with no stored location.

The store does not check that an owner exists elsewhere; that is the caller's job.
Backends only implement the raw `_write`/`_read*` primitives; the public methods here
handle validation and translate backend failures into `StoreError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Literal

import pydantic

from tontine_geo.core.errors import NotFoundError, ProximityError, StoreError, ValidationError
from tontine_geo.domain.models import GroupLocation, Location, LocationRecord, OwnerId, UserLocation

logger = logging.getLogger(__name__)

OwnerKind = Literal["user", "group"]

_RECORD_TYPES: dict[str, type[LocationRecord]] = {"user": UserLocation, "group": GroupLocation}


class LocationStore(ABC):
    """Key-value store of `LocationRecord`s for one kind of owner."""

    def __init__(self, kind: OwnerKind):
        if kind not in _RECORD_TYPES:
            raise ValueError(f"Unknown owner kind: {kind!r}")
        self._kind = kind
        self._record_type = _RECORD_TYPES[kind]

    @property
    def kind(self) -> OwnerKind:
        return self._kind

    def _build_record(self, owner_id: OwnerId, location: Location) -> LocationRecord:
        if not isinstance(location, Location):
            raise ValidationError(f"Expected a Location, got {type(location).__name__}")
        try:
            return self._record_type(
                owner_id=owner_id,
                location=location,
                updated_at=datetime.now(timezone.utc),
            )
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid {self._kind} id {owner_id!r}") from exc

    async def _guard(self, op: str, coro):
        try:
            return await coro
        except ProximityError:
            raise
        except Exception as exc:
            logger.warning("%s location store %s failed: %s", self._kind, op, exc)
            raise StoreError(f"{self._kind} location store {op} failed: {exc}") from exc

    async def save_location(self, owner_id: OwnerId, location: Location) -> LocationRecord:
        """Upsert the location for `owner_id`, replacing any previous value entirely."""
        record = self._build_record(owner_id, location)
        await self._guard("write", self._write(record))
        logger.debug("Saved %s location for %r", self._kind, owner_id)
        return record

    async def get_record(self, owner_id: OwnerId) -> LocationRecord:
        record = await self._guard("read", self._read(owner_id))
        if record is None:
            raise NotFoundError(f"No location stored for {self._kind} {owner_id!r}")
        return record

    async def get_location(self, owner_id: OwnerId) -> Location:
        return (await self.get_record(owner_id)).location

    async def list_locations(self, owner_ids: Iterable[OwnerId]) -> dict[OwnerId, Location]:
        """Batch read. Owners without a stored location are absent from the result."""
        ids = set(owner_ids)
        if not ids:
            return {}
        records = await self._guard("batch read", self._read_many(ids))
        return {owner_id: rec.location for owner_id, rec in records.items()}

    async def all_locations(self) -> dict[OwnerId, Location]:
        """Every stored location (the candidate scan for proximity searches)."""
        records = await self._guard("scan", self._read_all())
        return {owner_id: rec.location for owner_id, rec in records.items()}

    @abstractmethod
    async def _write(self, record: LocationRecord) -> None: ...

    @abstractmethod
    async def _read(self, owner_id: OwnerId) -> LocationRecord | None: ...

    async def _read_many(self, owner_ids: set[OwnerId]) -> dict[OwnerId, LocationRecord]:
        out: dict[OwnerId, LocationRecord] = {}
        for owner_id in owner_ids:
            rec = await self._read(owner_id)
            if rec is not None:
                out[owner_id] = rec
        return out

    @abstractmethod
    async def _read_all(self) -> dict[OwnerId, LocationRecord]: ...


class InMemoryLocationStore(LocationStore):
    """Process-local store; used by tests and the `memory` backend."""

    def __init__(self, kind: OwnerKind):
        super().__init__(kind)
        self._records: dict[OwnerId, LocationRecord] = {}

    async def _write(self, record: LocationRecord) -> None:
        self._records[record.owner_id] = record

    async def _read(self, owner_id: OwnerId) -> LocationRecord | None:
        return self._records.get(owner_id)

    async def _read_all(self) -> dict[OwnerId, LocationRecord]:
        return dict(self._records)


class FileLocationStore(LocationStore):
    """A filesystem-backed store: one JSON document per owner under `<base_dir>/<kind>/`.

    Notes:
    - File names are hashed (SHA-256) to avoid filesystem path issues with arbitrary ids.
    - Writes go through a uniquely named temporary file + atomic replace, so concurrent saves
      for the same owner never leave a partial document (the last replace wins).
    - Blocking file I/O runs in a worker thread.
    """

    def __init__(self, base_dir: Path, kind: OwnerKind):
        super().__init__(kind)
        self._dir = Path(base_dir) / kind

    @property
    def base_dir(self) -> Path:
        return self._dir

    def _key_path(self, owner_id: OwnerId) -> Path:
        digest = sha256(f"{self._kind}:{owner_id}".encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    def _load(self, path: Path) -> LocationRecord:
        return self._record_type.model_validate_json(path.read_text(encoding="utf-8"))

    def _write_sync(self, record: LocationRecord) -> None:
        path = self._key_path(record.owner_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.stem}.{uuid.uuid4().hex}.tmp")
        tmp.write_text(json.dumps(record.model_dump(mode="json"), ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    def _read_sync(self, owner_id: OwnerId) -> LocationRecord | None:
        path = self._key_path(owner_id)
        if not path.exists():
            return None
        return self._load(path)

    def _read_all_sync(self) -> dict[OwnerId, LocationRecord]:
        if not self._dir.is_dir():
            return {}
        out: dict[OwnerId, LocationRecord] = {}
        for path in sorted(self._dir.glob("*.json")):
            rec = self._load(path)
            out[rec.owner_id] = rec
        return out

    async def _write(self, record: LocationRecord) -> None:
        await asyncio.to_thread(self._write_sync, record)

    async def _read(self, owner_id: OwnerId) -> LocationRecord | None:
        return await asyncio.to_thread(self._read_sync, owner_id)

    async def _read_all(self) -> dict[OwnerId, LocationRecord]:
        return await asyncio.to_thread(self._read_all_sync)
