"""Normalized compartment and policy records returned by the identity proxy."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """snake_case in Python, camelCase on the wire like the OCI REST API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    @field_validator("time_created", mode="before", check_fields=False)
    @classmethod
    def _stringify_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    @field_validator(
        "description", "compartment_id", "lifecycle_state",
        mode="before", check_fields=False,
    )
    @classmethod
    def _blank_text(cls, value: Any) -> Any:
        return "" if value is None else value


class GroupingNode(_WireModel):
    """One compartment. ``compartment_id`` is the parent it was listed under."""

    id: str
    name: str
    description: str = ""
    compartment_id: str = ""
    lifecycle_state: str = ""
    time_created: str | None = None


class Policy(_WireModel):
    id: str
    name: str
    description: str = ""
    statements: list[str] = Field(default_factory=list)
    compartment_id: str = ""
    lifecycle_state: str = ""
    time_created: str | None = None

    @field_validator("statements", mode="before")
    @classmethod
    def _none_statements(cls, value: Any) -> Any:
        return [] if value is None else value

