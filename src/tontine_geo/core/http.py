"""
HTTP helpers.

This module centralizes the minimal async HTTP client logic used by the geocoding
gateway and the managed-backend adapters.

Design goals:
- Small surface area (GET JSON, POST JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can translate failures into their own error types.
- No retries: a caller that wants them retries the whole idempotent operation.
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "tontine-geo/0.1.0 (+https://local)"


def _merge_headers(headers: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if headers:
        request_headers.update(headers)
    return request_headers


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """GET `url` and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        resp = await client.get(url, params=params, headers=_merge_headers(headers))
        resp.raise_for_status()
        return resp.json()


async def post_json(
    url: str,
    *,
    payload: Any,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """POST `payload` as a JSON body and return the decoded JSON response (None if empty).

    Used by the PostgREST upsert path.

    Raises:
        httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
        ValueError: If a non-empty response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        resp = await client.post(url, json=payload, params=params, headers=_merge_headers(headers))
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()
