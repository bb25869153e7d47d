"""Canopy exception hierarchy.

Provides a structured exception tree so the HTTP boundary can map each
failure mode to a stable status code and the client can tell a bad
request apart from an upstream outage.
"""

from __future__ import annotations


class CanopyError(Exception):
    """Base for all Canopy exceptions."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class MissingParameterError(CanopyError):
    """A required query value was omitted by the caller."""

    status_code = 400
    default_message = "Missing parameter"


class ProfileNotFoundError(CanopyError):
    """The named profile is absent from the configuration file."""

    status_code = 404
    default_message = "Profile not found"


class InvalidProfileError(ProfileNotFoundError):
    """A profile name that the active auth mode can never accept."""

    status_code = 400
    default_message = "Invalid profile"


class UpstreamFailure(CanopyError):
    """The identity service call failed or returned an unexpected shape."""

    status_code = 500
    default_message = "Upstream request failed"


class MetadataUnavailableError(UpstreamFailure):
    """Root compartment discovery via instance metadata failed."""

    default_message = "Unable to get tenancy OCID from instance metadata"


class NetworkFailureError(CanopyError):
    """Client side: the HTTP call failed or returned an unexpected shape."""

    default_message = "Network request failed"
