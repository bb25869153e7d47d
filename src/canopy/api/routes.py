"""API route handlers for Canopy."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, Request

from canopy import __version__
from canopy.api.access_log import log_response_body
from canopy.api.engine import Engine
from canopy.api.schemas import (
    ErrorResponse,
    GroupingNode,
    HealthResponse,
    Policy,
    ProfilesResponse,
)
from canopy.exceptions import CanopyError, MissingParameterError

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Missing or invalid parameter"},
    404: {"model": ErrorResponse, "description": "Profile not found"},
    500: {"model": ErrorResponse, "description": "Identity service failure"},
}


def _get_engine(request: Request) -> Engine:
    """Get the engine from the app state."""
    return request.app.state.engine


@router.get("/", response_model=HealthResponse)
async def health(request: Request):
    """Backend connectivity check."""
    engine = _get_engine(request)
    return HealthResponse(status="ok", version=__version__, mode=engine.mode)


@router.get(
    "/api/profiles",
    response_model=ProfilesResponse,
    responses={500: _ERRORS[500]},
)
async def list_profiles(request: Request):
    """Profiles this server can browse with."""
    engine = _get_engine(request)
    try:
        profiles = await asyncio.to_thread(engine.strategy.list_profiles)
    except Exception as e:
        logger.error("Error in /api/profiles: %s", e, exc_info=True)
        raise CanopyError("Failed to get profiles") from e
    log_response_body(request, 200, {"profiles": profiles})
    return ProfilesResponse(profiles=profiles)


@router.get(
    "/api/compartments", response_model=list[GroupingNode], responses=_ERRORS,
)
async def list_compartments(
    request: Request,
    profile: str | None = None,
    parent: str | None = None,
):
    """Sub-compartments of ``parent``, or of the tenancy root when omitted."""
    engine = _get_engine(request)
    try:
        credentials = await asyncio.to_thread(
            engine.strategy.resolve_credentials, profile,
        )
        items = await engine.proxy.list_child_groupings(credentials, parent)
    except CanopyError as e:
        logger.error(
            "Error in /api/compartments (profile=%r parent=%r): %s",
            profile, parent, e,
        )
        raise
    log_response_body(
        request, 200, [item.model_dump(by_alias=True) for item in items],
    )
    return items


@router.get("/api/policies", response_model=list[Policy], responses=_ERRORS)
async def list_policies(
    request: Request,
    profile: str | None = None,
    compartment_id: str | None = Query(default=None, alias="compartmentId"),
):
    """IAM policies attached to one compartment."""
    engine = _get_engine(request)
    try:
        if not str(compartment_id or "").strip():
            raise MissingParameterError("Missing compartmentId")
        credentials = await asyncio.to_thread(
            engine.strategy.resolve_credentials, profile,
        )
        items = await engine.proxy.list_policies(credentials, compartment_id)
    except CanopyError as e:
        logger.error(
            "Error in /api/policies (profile=%r compartmentId=%r): %s",
            profile, compartment_id, e,
        )
        raise
    log_response_body(
        request, 200, [item.model_dump(by_alias=True) for item in items],
    )
    return items
