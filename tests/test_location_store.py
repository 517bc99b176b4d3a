import asyncio
from datetime import timezone

import pytest

from tontine_geo.core.errors import NotFoundError, StoreError, ValidationError
from tontine_geo.domain.models import GroupLocation, Location, UserLocation
from tontine_geo.storage.location_store import FileLocationStore, InMemoryLocationStore


def _stores(tmp_path):
    return [InMemoryLocationStore("user"), FileLocationStore(tmp_path, "user")]


def test_save_twice_keeps_only_the_second_location(tmp_path):
    for store in _stores(tmp_path):
        first = Location(latitude=14.7167, longitude=-17.4677, address="Plateau", city="Dakar", postal_code="10200")
        second = Location(latitude=5.3600, longitude=-4.0083)

        asyncio.run(store.save_location("u1", first))
        asyncio.run(store.save_location("u1", second))

        got = asyncio.run(store.get_location("u1"))
        assert got == second
        # No field merge: the address parts of the first save are gone.
        assert got.city is None and got.address is None and got.postal_code is None


def test_get_location_missing_owner_raises_not_found(tmp_path):
    for store in _stores(tmp_path):
        with pytest.raises(NotFoundError):
            asyncio.run(store.get_location("nobody"))


def test_list_locations_omits_missing_ids(tmp_path):
    for store in _stores(tmp_path):
        asyncio.run(store.save_location("a", Location(latitude=1, longitude=1)))
        asyncio.run(store.save_location("b", Location(latitude=2, longitude=2)))

        got = asyncio.run(store.list_locations({"a", "b", "ghost"}))
        assert set(got) == {"a", "b"}
        assert asyncio.run(store.list_locations(set())) == {}


def test_save_returns_typed_record_with_utc_timestamp(tmp_path):
    users = FileLocationStore(tmp_path, "user")
    groups = FileLocationStore(tmp_path, "group")

    rec = asyncio.run(users.save_location("u1", Location(latitude=0, longitude=0)))
    assert isinstance(rec, UserLocation)
    assert rec.updated_at.tzinfo == timezone.utc

    grec = asyncio.run(groups.save_location(7, Location(latitude=0, longitude=0)))
    assert isinstance(grec, GroupLocation)
    assert asyncio.run(groups.get_record(7)).owner_id == 7
    assert set(asyncio.run(groups.all_locations())) == {7}
    # Users and groups never share a namespace.
    assert set(asyncio.run(users.all_locations())) == {"u1"}


def test_save_rejects_non_location_values():
    store = InMemoryLocationStore("user")
    with pytest.raises(ValidationError):
        asyncio.run(store.save_location("u1", {"latitude": 0, "longitude": 0}))


def test_group_store_rejects_non_integer_ids():
    store = InMemoryLocationStore("group")
    with pytest.raises(ValidationError):
        asyncio.run(store.save_location("not-a-number", Location(latitude=0, longitude=0)))


def test_file_store_survives_reopen(tmp_path):
    asyncio.run(FileLocationStore(tmp_path, "group").save_location(3, Location(latitude=6.5, longitude=3.4)))
    reopened = FileLocationStore(tmp_path, "group")
    assert asyncio.run(reopened.get_location(3)) == Location(latitude=6.5, longitude=3.4)


def test_file_store_corrupt_document_is_a_store_error(tmp_path):
    store = FileLocationStore(tmp_path, "user")
    asyncio.run(store.save_location("u1", Location(latitude=0, longitude=0)))
    next(store.base_dir.glob("*.json")).write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreError):
        asyncio.run(store.all_locations())


def test_file_store_concurrent_saves_leave_one_complete_document(tmp_path):
    store = FileLocationStore(tmp_path, "user")

    async def hammer():
        await asyncio.gather(
            *(store.save_location("u1", Location(latitude=i, longitude=i)) for i in range(20))
        )

    asyncio.run(hammer())
    got = asyncio.run(store.get_location("u1"))
    assert got.latitude == got.longitude
    assert list(store.base_dir.glob("*.tmp")) == []
