"""Credential resolution: config profiles, auth modes, root discovery."""

from canopy.auth.config import ConfigStore
from canopy.auth.metadata import RootIdentifierCache, RootResolver
from canopy.auth.runtime import (
    INSTANCE_PRINCIPAL_PROFILE,
    AuthStrategy,
    InstancePrincipalAuthStrategy,
    ProfileAuthStrategy,
    ResolvedCredentials,
    select_auth_strategy,
)

__all__ = [
    "INSTANCE_PRINCIPAL_PROFILE",
    "AuthStrategy",
    "ConfigStore",
    "InstancePrincipalAuthStrategy",
    "ProfileAuthStrategy",
    "ResolvedCredentials",
    "RootIdentifierCache",
    "RootResolver",
    "select_auth_strategy",
]
