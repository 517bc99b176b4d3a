import asyncio
import json

import httpx
import pytest

from tontine_geo.backends.postgrest import (
    PostgrestClient,
    PostgrestGroupRegistry,
    PostgrestLocationStore,
    PostgrestMembershipRoster,
    PostgrestProfileDirectory,
    PostgrestVenueDirectory,
)
from tontine_geo.config.settings import PostgrestSettings
from tontine_geo.core.errors import NotFoundError, StoreError
from tontine_geo.domain.models import CafeVenue, Location, RestaurantVenue

BASE_URL = "https://project.supabase.test/rest/v1"


def _client(handler) -> PostgrestClient:
    settings = PostgrestSettings(url=BASE_URL, api_key="anon-key")
    return PostgrestClient(settings, transport=httpx.MockTransport(handler))


def test_client_requires_a_url():
    with pytest.raises(ValueError):
        PostgrestClient(PostgrestSettings())


def test_save_location_upserts_full_row_on_owner_column():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    store = PostgrestLocationStore(_client(handler), "user")
    asyncio.run(store.save_location("u-1", Location(latitude=14.69, longitude=-17.44, city="Dakar")))

    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/user_locations"
    assert request.url.params["on_conflict"] == "user_id"
    assert request.headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"

    row = json.loads(request.content)
    assert row["user_id"] == "u-1"
    assert (row["latitude"], row["longitude"]) == (14.69, -17.44)
    # Absent address parts are sent as null so an older value cannot survive.
    assert row["address"] is None and row["postal_code"] is None
    assert row["city"] == "Dakar"


def test_get_location_reads_one_row_by_owner():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/v1/group_locations"
        assert request.url.params["group_id"] == "eq.4"
        return httpx.Response(
            200,
            json=[
                {
                    "group_id": 4,
                    "latitude": 6.13,
                    "longitude": 1.22,
                    "address": None,
                    "city": "Lomé",
                    "country": "Togo",
                    "postal_code": None,
                    "updated_at": "2024-05-01T10:00:00+00:00",
                }
            ],
        )

    store = PostgrestLocationStore(_client(handler), "group")
    loc = asyncio.run(store.get_location(4))
    assert loc == Location(latitude=6.13, longitude=1.22, city="Lomé", country="Togo")


def test_get_location_without_row_is_not_found():
    store = PostgrestLocationStore(_client(lambda r: httpx.Response(200, json=[])), "user")
    with pytest.raises(NotFoundError):
        asyncio.run(store.get_location("nobody"))


def test_list_locations_uses_an_in_filter_with_quoted_ids():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["user_id"])
        return httpx.Response(
            200,
            json=[{"user_id": "a", "latitude": 1, "longitude": 1, "updated_at": "2024-05-01T10:00:00Z"}],
        )

    store = PostgrestLocationStore(_client(handler), "user")
    got = asyncio.run(store.list_locations(["b", "a"]))

    assert seen == ['in.("a","b")']
    assert set(got) == {"a"}


def test_backend_failure_is_a_store_error():
    store = PostgrestLocationStore(_client(lambda r: httpx.Response(500, text="boom")), "user")
    with pytest.raises(StoreError):
        asyncio.run(store.all_locations())
    with pytest.raises(StoreError):
        asyncio.run(store.save_location("u", Location(latitude=0, longitude=0)))


def test_malformed_row_is_a_store_error():
    rows = [{"user_id": "a", "latitude": 123, "longitude": 0, "updated_at": "2024-05-01T10:00:00Z"}]
    store = PostgrestLocationStore(_client(lambda r: httpx.Response(200, json=rows)), "user")
    with pytest.raises(StoreError):
        asyncio.run(store.all_locations())


def test_roster_reads_active_memberships_only():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        if "group_id" in request.url.params and request.url.params["select"] == "user_id":
            return httpx.Response(200, json=[{"user_id": "a"}, {"user_id": "b"}])
        return httpx.Response(200, json=[{"group_id": 1}, {"group_id": 3}])

    roster = PostgrestMembershipRoster(_client(handler))
    assert asyncio.run(roster.active_member_ids(1)) == {"a", "b"}
    assert asyncio.run(roster.active_group_ids("a")) == {1, 3}
    assert all(p["status"] == "eq.active" for p in seen)


def test_name_lookups():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/tontine_groups"):
            return httpx.Response(200, json=[{"name": "Tontine Bastille"}])
        return httpx.Response(200, json=[])

    client = _client(handler)
    assert asyncio.run(PostgrestGroupRegistry(client).name_of(1)) == "Tontine Bastille"
    with pytest.raises(NotFoundError):
        asyncio.run(PostgrestProfileDirectory(client).name_of("ghost"))


def test_venue_rows_map_type_to_category():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params.get("type"))
        return httpx.Response(
            200,
            json=[
                {"id": 1, "name": "Chez Fatou", "type": "restaurant", "latitude": 48.85, "longitude": 2.37,
                 "city": "Paris", "rating": 4.5, "website": None, "phone_number": None},
                {"id": 2, "name": "Cafe Teranga", "type": "cafe", "latitude": 48.86, "longitude": 2.38},
            ],
        )

    venues = asyncio.run(PostgrestVenueDirectory(_client(handler)).list_venues())
    assert [type(v) for v in venues] == [RestaurantVenue, CafeVenue]
    assert venues[0].rating == 4.5
    assert venues[0].location.city == "Paris"

    asyncio.run(PostgrestVenueDirectory(_client(handler)).list_venues("cafe"))
    assert seen == [None, "eq.cafe"]
