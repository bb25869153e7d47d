"""Identity service proxy: list child compartments and policies.

The OCI SDK is synchronous, so each upstream call runs in a worker thread.
There is one upstream call per operation, with no retries and no
pagination; the first page is the result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from canopy.auth.runtime import AuthStrategy, ResolvedCredentials
from canopy.exceptions import CanopyError, MissingParameterError, UpstreamFailure
from canopy.identity.models import GroupingNode, Policy

logger = logging.getLogger(__name__)


def upstream_message(error: BaseException, fallback: str) -> str:
    """The upstream service's own message when it has one, else ``fallback``."""
    message = getattr(error, "message", None)
    if isinstance(message, str) and message.strip():
        return message
    text = str(error).strip()
    return text or fallback


def _as_dict(item: Any) -> dict:
    if isinstance(item, dict):
        return item
    import oci

    converted = oci.util.to_dict(item)
    if not isinstance(converted, dict):
        raise UpstreamFailure("Unexpected item in identity service response")
    return converted


class IdentityProxy:
    """Runs identity-service list calls with credentials from the auth strategy."""

    def __init__(self, strategy: AuthStrategy) -> None:
        self._strategy = strategy

    async def list_child_groupings(
        self,
        credentials: ResolvedCredentials,
        parent_id: str | None = None,
    ) -> list[GroupingNode]:
        """Direct children of ``parent_id``; the root compartment when omitted."""
        compartment_id = str(parent_id or "").strip()
        if not compartment_id:
            compartment_id = await self._strategy.resolve_root_id(credentials)
        items = await self._list(
            credentials,
            "list_compartments",
            {
                "compartment_id": compartment_id,
                "access_level": "ANY",
                "compartment_id_in_subtree": False,
            },
            fallback="Failed to list compartments",
        )
        return self._build(GroupingNode, items, fallback="Failed to list compartments")

    async def list_policies(
        self,
        credentials: ResolvedCredentials,
        grouping_id: str | None,
    ) -> list[Policy]:
        """Policies attached directly to ``grouping_id``."""
        compartment_id = str(grouping_id or "").strip()
        if not compartment_id:
            raise MissingParameterError("Missing compartmentId")
        items = await self._list(
            credentials,
            "list_policies",
            {"compartment_id": compartment_id},
            fallback="Failed to list policies",
        )
        return self._build(Policy, items, fallback="Failed to list policies")

    async def _list(
        self,
        credentials: ResolvedCredentials,
        operation: str,
        kwargs: dict[str, Any],
        *,
        fallback: str,
    ) -> list[dict]:
        def _invoke() -> Any:
            client = self._strategy.build_identity_client(credentials)
            return getattr(client, operation)(**kwargs)

        try:
            response = await asyncio.to_thread(_invoke)
        except CanopyError:
            raise
        except Exception as e:
            logger.error(
                "%s failed for profile %r (compartment %s): %s",
                operation, credentials.profile_name,
                kwargs.get("compartment_id"), e,
            )
            raise UpstreamFailure(upstream_message(e, fallback)) from e

        data = getattr(response, "data", None)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error("%s returned %s, expected a list", operation, type(data).__name__)
            raise UpstreamFailure(fallback)
        return [_as_dict(item) for item in data]

    @staticmethod
    def _build(model: type, items: list[dict], *, fallback: str) -> list:
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            logger.error("Unexpected %s shape from identity service: %s", model.__name__, e)
            raise UpstreamFailure(fallback) from e
