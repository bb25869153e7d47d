"""Root compartment discovery through the OCI instance metadata service.

Only used in instance-principal mode. The tenancy root is looked up once
and then served from a process-wide cache that is never invalidated;
restarting the process is the only way to reset it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import httpx

from canopy.config import DEFAULT_METADATA_URL

logger = logging.getLogger(__name__)


class RootIdentifierCache:
    """Single-value memo. Holds the first successfully computed root id."""

    def __init__(self) -> None:
        self._value: str | None = None

    @property
    def value(self) -> str | None:
        return self._value

    async def get_or_compute(
        self, compute: Callable[[], Awaitable[str | None]],
    ) -> str | None:
        """Return the cached value, or run ``compute`` and cache a non-empty result.

        There is no lock: racing first callers may each compute, and the
        last write wins. Failures (None) are never cached.
        """
        if self._value:
            return self._value
        result = await compute()
        if result:
            self._value = result
        return result


_PROCESS_ROOT_CACHE = RootIdentifierCache()


def process_root_cache() -> RootIdentifierCache:
    """The cache shared by every request in this process."""
    return _PROCESS_ROOT_CACHE


class RootResolver:
    """Fetches the root compartment id from instance metadata, memoized."""

    def __init__(
        self,
        metadata_url: str = DEFAULT_METADATA_URL,
        *,
        cache: RootIdentifierCache | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._metadata_url = metadata_url
        self._cache = cache if cache is not None else process_root_cache()
        self._timeout = timeout
        self._transport = transport

    @property
    def cache(self) -> RootIdentifierCache:
        return self._cache

    async def get_root_id(self) -> str | None:
        return await self._cache.get_or_compute(self._fetch_root_id)

    async def _fetch_root_id(self) -> str | None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport,
            ) as client:
                response = await client.get(self._metadata_url)
                response.raise_for_status()
                meta = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Instance metadata lookup failed: %s", e)
            return None

        if not isinstance(meta, dict):
            logger.warning("Instance metadata response is not an object")
            return None
        compartment_id = meta.get("compartmentId")
        if not isinstance(compartment_id, str) or not compartment_id.strip():
            logger.warning("Instance metadata has no compartmentId")
            return None
        logger.info("Resolved root compartment from instance metadata")
        return compartment_id.strip()
