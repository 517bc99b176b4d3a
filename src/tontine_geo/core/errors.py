"""
Error taxonomy.

Every failure the proximity core can surface is one of these types, so a calling
layer can tell "no location set" from "bad search parameters" from "backend down"
without inspecting messages.

None of these derive from `ValueError`: pydantic only wraps `ValueError`/`AssertionError`
raised inside validators, so our own types propagate unchanged out of model construction.
"""

from __future__ import annotations


class ProximityError(Exception):
    """Base class for all errors raised by tontine_geo."""

    code = "PROXIMITY_ERROR"

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(ProximityError):
    """Invalid input (coordinates out of range, radius/limit <= 0, ...). Raised before any I/O."""

    code = "VALIDATION_ERROR"


class NotFoundError(ProximityError):
    """No stored location for the requested owner."""

    code = "LOCATION_NOT_FOUND"


class StoreError(ProximityError):
    """Persistence or collaborator read/write failure (the cause is chained)."""

    code = "STORE_UNAVAILABLE"


class GeocodingError(ProximityError):
    """Geocoding provider failure; `code` carries the provider diagnostic (e.g. ZERO_RESULTS)."""

    code = "GEOCODING_FAILED"


class LocationPermissionError(ProximityError):
    """Device position could not be obtained."""

    code = "POSITION_ERROR"


class PermissionDenied(LocationPermissionError):
    code = "PERMISSION_DENIED"


class PositionUnavailable(LocationPermissionError):
    code = "POSITION_UNAVAILABLE"


class PositionTimeout(LocationPermissionError):
    code = "POSITION_TIMEOUT"
