"""Auth mode selection and credential resolution.

Exactly one strategy is active for the lifetime of the server process:

- ``ProfileAuthStrategy`` (default) reads named profiles from the OCI CLI
  config file; the tenancy field is the root compartment.
- ``InstancePrincipalAuthStrategy`` uses the machine's own identity and
  exposes a single synthetic profile; the root compartment comes from
  instance metadata.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from canopy.auth.config import ConfigStore
from canopy.auth.metadata import RootResolver
from canopy.exceptions import (
    InvalidProfileError,
    MetadataUnavailableError,
    MissingParameterError,
    ProfileNotFoundError,
)

logger = logging.getLogger(__name__)

MODE_PROFILE = "profile"
MODE_INSTANCE_PRINCIPAL = "instance_principal"
INSTANCE_PRINCIPAL_PROFILE = "instance-principal"
TENANCY_FIELD = "tenancy"

ClientFactory = Callable[..., Any]


@dataclass(frozen=True)
class ResolvedCredentials:
    """Everything needed to build an identity client for one request."""

    profile_name: str
    mode: str
    config_path: Path | None = None
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def tenancy_id(self) -> str:
        return self.fields.get(TENANCY_FIELD, "")

    def __repr__(self) -> str:
        return (
            f"ResolvedCredentials(profile_name={self.profile_name!r}, "
            f"mode={self.mode!r})"
        )


def _no_retry() -> Any:
    import oci

    return oci.retry.NoneRetryStrategy()


def _default_client_factory(*args: Any, **kwargs: Any) -> Any:
    import oci

    return oci.identity.IdentityClient(*args, **kwargs)


class AuthStrategy(ABC):
    """Resolve a requested profile name into credentials and a root id."""

    mode: str = ""

    def __init__(self, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory or _default_client_factory

    @abstractmethod
    def list_profiles(self) -> list[str]:
        """Profile names this mode can serve."""

    @abstractmethod
    def resolve_credentials(self, profile_name: str | None) -> ResolvedCredentials:
        """Validate ``profile_name`` and return credentials for it."""

    @abstractmethod
    async def resolve_root_id(self, credentials: ResolvedCredentials) -> str:
        """Root compartment id used when a request names no parent."""

    @abstractmethod
    def build_identity_client(self, credentials: ResolvedCredentials) -> Any:
        """Construct an upstream identity client. May block on I/O."""


class ProfileAuthStrategy(AuthStrategy):
    """Credentials from a named section of the OCI CLI config file."""

    mode = MODE_PROFILE

    def __init__(
        self,
        store: ConfigStore,
        client_factory: ClientFactory | None = None,
        config_loader: Callable[..., dict] | None = None,
    ) -> None:
        super().__init__(client_factory)
        self.store = store
        self._config_loader = config_loader

    def list_profiles(self) -> list[str]:
        return self.store.list_profiles()

    def resolve_credentials(self, profile_name: str | None) -> ResolvedCredentials:
        name = str(profile_name or "").strip()
        if not name:
            raise MissingParameterError("Missing profile")
        fields = self.store.load_profile(name)
        if fields is None:
            logger.info("Profile %r not found in %s", name, self.store.path)
            raise ProfileNotFoundError("Profile not found")
        return ResolvedCredentials(
            profile_name=name,
            mode=self.mode,
            config_path=self.store.path,
            fields=fields,
        )

    async def resolve_root_id(self, credentials: ResolvedCredentials) -> str:
        if not credentials.tenancy_id:
            raise InvalidProfileError(
                f"Profile '{credentials.profile_name}' has no tenancy configured"
            )
        return credentials.tenancy_id

    def build_identity_client(self, credentials: ResolvedCredentials) -> Any:
        loader = self._config_loader
        if loader is None:
            import oci

            loader = oci.config.from_file
        oci_config = loader(
            file_location=str(credentials.config_path),
            profile_name=credentials.profile_name,
        )
        return self._client_factory(oci_config, retry_strategy=_no_retry())


class InstancePrincipalAuthStrategy(AuthStrategy):
    """Credentials derived from the running instance's own identity."""

    mode = MODE_INSTANCE_PRINCIPAL

    def __init__(
        self,
        root_resolver: RootResolver,
        client_factory: ClientFactory | None = None,
        signer_factory: Callable[[], Any] | None = None,
    ) -> None:
        super().__init__(client_factory)
        self.root_resolver = root_resolver
        self._signer_factory = signer_factory

    def list_profiles(self) -> list[str]:
        return [INSTANCE_PRINCIPAL_PROFILE]

    def resolve_credentials(self, profile_name: str | None) -> ResolvedCredentials:
        if profile_name != INSTANCE_PRINCIPAL_PROFILE:
            logger.info(
                "Rejected profile %r in instance-principal mode", profile_name,
            )
            raise InvalidProfileError(
                f"Profile must be '{INSTANCE_PRINCIPAL_PROFILE}' in this mode"
            )
        return ResolvedCredentials(
            profile_name=INSTANCE_PRINCIPAL_PROFILE,
            mode=self.mode,
        )

    async def resolve_root_id(self, credentials: ResolvedCredentials) -> str:
        root_id = await self.root_resolver.get_root_id()
        if not root_id:
            raise MetadataUnavailableError()
        return root_id

    def _make_signer(self) -> Any:
        if self._signer_factory is not None:
            return self._signer_factory()
        import oci

        return oci.auth.signers.InstancePrincipalsSecurityTokenSigner()

    def build_identity_client(self, credentials: ResolvedCredentials) -> Any:
        return self._client_factory(
            config={}, signer=self._make_signer(), retry_strategy=_no_retry(),
        )


def select_auth_strategy(
    instance_principal: bool,
    *,
    config_path: Path | str | None = None,
    metadata_url: str | None = None,
    metadata_timeout: float = 5.0,
    client_factory: ClientFactory | None = None,
) -> AuthStrategy:
    """Pick the auth strategy once, at process start."""
    if instance_principal:
        resolver_kwargs: dict[str, Any] = {"timeout": metadata_timeout}
        if metadata_url:
            resolver_kwargs["metadata_url"] = metadata_url
        return InstancePrincipalAuthStrategy(
            RootResolver(**resolver_kwargs),
            client_factory=client_factory,
        )
    return ProfileAuthStrategy(
        ConfigStore(config_path),
        client_factory=client_factory,
    )
