import asyncio
import json

import pytest

from tontine_geo.core.env import get_project_root
from tontine_geo.core.errors import NotFoundError, StoreError
from tontine_geo.storage.directory import load_directory
from tontine_geo.storage.venues import JsonVenueCatalog, load_venues


def test_shipped_sample_data_is_valid():
    root = get_project_root()
    venues = load_venues(root / "data" / "venues.json")
    assert {v.category for v in venues} == {"restaurant", "cafe", "office", "other"}

    directory = load_directory(root / "data" / "directory.json")
    assert asyncio.run(directory.groups.name_of(1)) == "Tontine Bastille"


def test_missing_venue_file_is_an_empty_catalog(tmp_path):
    catalog = JsonVenueCatalog(tmp_path / "nope.json")
    assert asyncio.run(catalog.list_venues()) == []


def test_invalid_venue_file_is_a_store_error(tmp_path):
    path = tmp_path / "venues.json"
    path.write_text(json.dumps([{"id": 1, "name": "Bar", "category": "bar"}]), encoding="utf-8")
    with pytest.raises(StoreError):
        asyncio.run(JsonVenueCatalog(path).list_venues())


def test_directory_roster_and_names(tmp_path):
    path = tmp_path / "directory.json"
    path.write_text(
        json.dumps(
            {
                "groups": [
                    {"id": 1, "name": "A", "members": ["u1", "u2"]},
                    {"id": 2, "name": "B", "members": ["u2"]},
                ],
                "profiles": [{"id": "u1", "name": "Awa"}],
            }
        ),
        encoding="utf-8",
    )
    directory = load_directory(path)

    assert asyncio.run(directory.roster.active_member_ids(1)) == {"u1", "u2"}
    assert asyncio.run(directory.roster.active_group_ids("u2")) == {1, 2}
    assert asyncio.run(directory.profiles.name_of("u1")) == "Awa"
    with pytest.raises(NotFoundError):
        asyncio.run(directory.profiles.name_of("u2"))


def test_unset_directory_is_empty():
    directory = load_directory(None)
    assert asyncio.run(directory.roster.active_member_ids(1)) == set()
