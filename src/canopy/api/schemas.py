"""Pydantic response schemas for the Canopy API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from canopy.identity.models import GroupingNode, Policy

# --- Response Schemas ---


class ProfilesResponse(BaseModel):
    profiles: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    version: str
    mode: str


__all__ = [
    "ErrorResponse",
    "GroupingNode",
    "HealthResponse",
    "Policy",
    "ProfilesResponse",
]
