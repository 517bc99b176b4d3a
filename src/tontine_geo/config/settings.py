# src/tontine_geo/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/tontine_geo/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `GOOGLE_MAPS_API_KEY`, `SUPABASE_URL`, `SUPABASE_KEY`)
- an external YAML file via `TONTINE_GEO_CONFIG_PATH`

Design rule:
- Tuning knobs (search defaults, timeouts, table names) live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from tontine_geo.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `tontine_geo.config`."""
    text = resources.files("tontine_geo.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "tontine-geo"
    http_timeout_seconds: float = 10
    log_level: str = "INFO"


class StoreSettings(BaseModel):
    backend: Literal["memory", "file", "postgrest"] = "file"
    dir: str = ".data/tontine_geo"


class VenueSettings(BaseModel):
    # JSON catalog of meeting venues; only read when the store backend is not postgrest.
    path: str | None = "data/venues.json"


class DirectorySettings(BaseModel):
    # Group names, memberships and profile names for the memory/file backends.
    path: str | None = "data/directory.json"


class PostgrestTables(BaseModel):
    user_locations: str = "user_locations"
    group_locations: str = "group_locations"
    group_members: str = "group_members"
    groups: str = "tontine_groups"
    profiles: str = "profiles"
    meeting_locations: str = "meeting_locations"


class PostgrestSettings(BaseModel):
    url: str | None = None
    api_key: str | None = None
    schema_name: str = "public"
    tables: PostgrestTables = Field(default_factory=PostgrestTables)


class GeocodingSettings(BaseModel):
    base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    api_key: str | None = None
    language: str | None = None
    region: str | None = None
    timeout_seconds: float = 10


class SearchSettings(BaseModel):
    default_radius_km: float = Field(10, gt=0)
    default_limit: int = Field(10, gt=0)
    venue_default_radius_km: float = Field(2, gt=0)
    max_limit: int = Field(100, gt=0)
    timeout_seconds: float = Field(10, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    venues: VenueSettings = Field(default_factory=VenueSettings)
    directory: DirectorySettings = Field(default_factory=DirectorySettings)
    postgrest: PostgrestSettings = Field(default_factory=PostgrestSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("TONTINE_GEO_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    store_dir = os.getenv("TONTINE_GEO_STORE_DIR")
    if store_dir:
        data.setdefault("store", {})["dir"] = store_dir

    store_backend = os.getenv("TONTINE_GEO_STORE_BACKEND")
    if store_backend:
        data.setdefault("store", {})["backend"] = store_backend

    maps_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if maps_key:
        data.setdefault("geocoding", {})["api_key"] = maps_key

    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")
    if supabase_url:
        data.setdefault("postgrest", {})["url"] = supabase_url.rstrip("/") + "/rest/v1"
    if supabase_key:
        data.setdefault("postgrest", {})["api_key"] = supabase_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("TONTINE_GEO_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
