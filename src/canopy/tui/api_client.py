"""Async HTTP client for the Canopy REST API.

Used by the navigation controller and the CLI to talk to a running
Canopy server. Every failure surfaces as ``NetworkFailureError`` with a
message fit for display.
"""

from __future__ import annotations

import httpx

from canopy.config import DEFAULT_BACKEND_URL
from canopy.exceptions import NetworkFailureError


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        message = body.get("error")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


class CanopyAPIClient:
    """Thin async client wrapping the Canopy REST API."""

    def __init__(self, base_url: str = DEFAULT_BACKEND_URL, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get_json(
        self, path: str, params: dict[str, str], *, fallback: str,
    ) -> object:
        client = await self._get_client()
        try:
            r = await client.get(path, params=params)
        except httpx.HTTPError as e:
            raise NetworkFailureError(fallback) from e
        if r.is_error:
            raise NetworkFailureError(_error_message(r, fallback))
        try:
            return r.json()
        except ValueError as e:
            raise NetworkFailureError("Unexpected response") from e

    async def _get_list(
        self, path: str, params: dict[str, str], *, fallback: str,
    ) -> list[dict]:
        data = await self._get_json(path, params, fallback=fallback)
        if not isinstance(data, list):
            if isinstance(data, dict) and isinstance(data.get("error"), str):
                raise NetworkFailureError(data["error"])
            raise NetworkFailureError("Unexpected response")
        if not all(isinstance(item, dict) for item in data):
            raise NetworkFailureError("Unexpected response")
        return data

    # --- Profiles ---

    async def list_profiles(self) -> list[str]:
        data = await self._get_json(
            "/api/profiles", {}, fallback="Could not load profiles.",
        )
        profiles = data.get("profiles") if isinstance(data, dict) else None
        if not isinstance(profiles, list):
            return []
        return [str(p) for p in profiles]

    # --- Compartments & policies ---

    async def list_compartments(
        self, profile: str, parent: str | None = None,
    ) -> list[dict]:
        params = {"profile": profile}
        if parent:
            params["parent"] = parent
        return await self._get_list(
            "/api/compartments", params, fallback="Failed to load compartments.",
        )

    async def list_policies(self, profile: str, compartment_id: str) -> list[dict]:
        return await self._get_list(
            "/api/policies",
            {"profile": profile, "compartmentId": compartment_id},
            fallback="Failed to load policies.",
        )

    async def health(self) -> dict:
        data = await self._get_json("/", {}, fallback="Backend unreachable.")
        return data if isinstance(data, dict) else {}
