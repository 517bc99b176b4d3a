"""
Geocoding gateway (Google Geocoding API).

This module turns a free-text address into a `Location`:
- calls the provider once (no internal retries; retry policy belongs to the caller),
- keeps only the first candidate (ambiguous addresses are not disambiguated),
- extracts city / country / postal code from the structured address components.

All provider-specific response handling lives in `parse_geocode_response`, so the rest
of the system only ever sees `Location`. Results are never persisted here; saving a
geocoded location is a separate, explicit `LocationStore.save_location` call.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pydantic

from tontine_geo.config.settings import Settings
from tontine_geo.core.errors import GeocodingError, ValidationError
from tontine_geo.core.http import get_json
from tontine_geo.domain.models import Location

logger = logging.getLogger(__name__)

# Component tags checked in order; the first tag that matches any component wins.
CITY_COMPONENT_TYPES = ("locality", "postal_town", "administrative_area_level_2")
COUNTRY_COMPONENT_TYPES = ("country",)
POSTAL_CODE_COMPONENT_TYPES = ("postal_code",)


def _find_component(components: list[dict[str, Any]], wanted: tuple[str, ...]) -> str | None:
    for tag in wanted:
        for component in components:
            if not isinstance(component, dict):
                continue
            if tag in (component.get("types") or []):
                name = component.get("long_name")
                if isinstance(name, str) and name.strip():
                    return name.strip()
    return None


def parse_geocode_response(payload: Any) -> Location:
    """Translate a Google Geocoding JSON response into a `Location`.

    Raises:
        GeocodingError: non-OK status (code = provider status), zero results
            (code = ZERO_RESULTS) or a malformed payload (code = INVALID_RESPONSE).
    """
    if not isinstance(payload, dict):
        raise GeocodingError("Geocoding response is not a JSON object", code="INVALID_RESPONSE")

    status = str(payload.get("status") or "UNKNOWN_ERROR")
    if status != "OK":
        detail = payload.get("error_message")
        message = f"Geocoding failed: {status}" + (f" ({detail})" if detail else "")
        raise GeocodingError(message, code=status)

    results = payload.get("results")
    if not isinstance(results, list) or not results:
        raise GeocodingError("Geocoding returned no results", code="ZERO_RESULTS")

    first = results[0]
    try:
        point = first["geometry"]["location"]
        lat = float(point["lat"])
        lon = float(point["lng"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodingError("Geocoding result has no usable coordinates", code="INVALID_RESPONSE") from exc

    components = first.get("address_components") or []
    if not isinstance(components, list):
        components = []

    try:
        return Location(
            latitude=lat,
            longitude=lon,
            address=first.get("formatted_address"),
            city=_find_component(components, CITY_COMPONENT_TYPES),
            country=_find_component(components, COUNTRY_COMPONENT_TYPES),
            postal_code=_find_component(components, POSTAL_CODE_COMPONENT_TYPES),
        )
    except (ValidationError, pydantic.ValidationError) as exc:
        raise GeocodingError(f"Geocoding returned an invalid location: {exc}", code="INVALID_RESPONSE") from exc


class GeocodingGateway:
    """Address -> `Location` via the configured provider endpoint."""

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    async def _fetch(self, address: str) -> Any:
        cfg = self._settings.geocoding
        params: dict[str, Any] = {"address": address, "key": cfg.api_key}
        if cfg.language:
            params["language"] = cfg.language
        if cfg.region:
            params["region"] = cfg.region
        return await get_json(
            cfg.base_url,
            params=params,
            timeout_seconds=cfg.timeout_seconds,
            transport=self._transport,
        )

    async def geocode(self, address: str) -> Location:
        """Resolve `address` to a `Location` (first candidate only)."""
        if not isinstance(address, str) or not address.strip():
            raise ValidationError("address must be a non-empty string")
        if not self._settings.geocoding.api_key:
            raise GeocodingError("No geocoding API key configured", code="MISSING_API_KEY")

        address = address.strip()
        logger.info("Geocoding address (%d chars)", len(address))
        try:
            payload = await self._fetch(address)
        except httpx.TimeoutException as exc:
            raise GeocodingError("Geocoding provider timed out", code="TIMEOUT") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise GeocodingError(f"Geocoding provider returned HTTP {status}", code=f"HTTP_{status}") from exc
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Geocoding provider unreachable: {exc}", code="UNREACHABLE") from exc
        except ValueError as exc:
            raise GeocodingError("Geocoding response is not valid JSON", code="INVALID_RESPONSE") from exc

        location = parse_geocode_response(payload)
        logger.debug("Geocoded to lat=%.5f lon=%.5f", location.latitude, location.longitude)
        return location
