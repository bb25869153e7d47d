"""Shared test fixtures for Canopy."""

from __future__ import annotations

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

from canopy.auth.config import ConfigStore
from canopy.auth.runtime import ProfileAuthStrategy
from canopy.config import Config, LoggingConfig, OCIConfig, ServerConfig
from canopy.exceptions import NetworkFailureError

TENANCY_ID = "ocid1.tenancy.x"
SALES_ID = "ocid1.compartment.y"
OPS_ID = "ocid1.compartment.ops"
EMEA_ID = "ocid1.compartment.emea"

OCI_CONFIG_TEXT = f"""\
# written by oci setup config
[DEFAULT]
user=ocid1.user.oc1..default
tenancy=ocid1.tenancy.default
region=us-phoenix-1

[dev]
user=ocid1.user.oc1..dev
fingerprint=aa:bb:cc
key_file=~/.oci/dev.pem
tenancy={TENANCY_ID}
region=us-ashburn-1
"""

COMPARTMENTS: dict[str, list[dict]] = {
    TENANCY_ID: [
        {
            "id": SALES_ID,
            "name": "Sales",
            "description": "Sales team",
            "compartment_id": TENANCY_ID,
            "lifecycle_state": "ACTIVE",
        },
        {
            "id": OPS_ID,
            "name": "Ops",
            "description": "Operations",
            "compartment_id": TENANCY_ID,
            "lifecycle_state": "ACTIVE",
        },
    ],
    SALES_ID: [
        {
            "id": EMEA_ID,
            "name": "EMEA",
            "description": "Europe",
            "compartment_id": SALES_ID,
            "lifecycle_state": "ACTIVE",
        },
    ],
}

POLICIES: dict[str, list[dict]] = {
    TENANCY_ID: [
        {
            "id": "ocid1.policy.root",
            "name": "Tenant Admin Policy",
            "description": "Administrators manage everything",
            "statements": [
                "ALLOW GROUP Administrators to manage all-resources IN TENANCY",
            ],
            "compartment_id": TENANCY_ID,
        },
    ],
    SALES_ID: [
        {
            "id": "ocid1.policy.sales",
            "name": "sales-readers",
            "description": "Read-only access for sales",
            "statements": [
                "Allow group SalesReaders to read all-resources in compartment Sales",
                "Allow group SalesReaders to use instances in compartment Sales",
            ],
            "compartment_id": SALES_ID,
        },
    ],
}


class FakeIdentityClient:
    """Stands in for ``oci.identity.IdentityClient``; records every call."""

    def __init__(self, compartments=None, policies=None, error=None):
        self.compartments = COMPARTMENTS if compartments is None else compartments
        self.policies = POLICIES if policies is None else policies
        self.error = error
        self.calls: list[tuple[str, str, dict]] = []

    def list_compartments(self, compartment_id, **kwargs):
        self.calls.append(("list_compartments", compartment_id, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=list(self.compartments.get(compartment_id, [])))

    def list_policies(self, compartment_id, **kwargs):
        self.calls.append(("list_policies", compartment_id, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=list(self.policies.get(compartment_id, [])))


class FakeCompartmentAPI:
    """In-memory stand-in for ``CanopyAPIClient`` used by navigation tests.

    ``gates`` maps ``(operation, id)`` to an ``asyncio.Event`` the call waits
    on, so tests can hold a response back and release it out of order.
    """

    def __init__(self, profiles=None, root_id=TENANCY_ID):
        self.profiles = ["dev"] if profiles is None else profiles
        self.root_id = root_id
        self.compartments = {k: list(v) for k, v in COMPARTMENTS.items()}
        self.policies = {k: list(v) for k, v in POLICIES.items()}
        self.calls: list[tuple[str, str]] = []
        self.fail: dict[tuple[str, str], str] = {}
        self.gates: dict[tuple[str, str], asyncio.Event] = {}
        self.base_url = "http://test"

    async def _maybe_wait(self, key):
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.fail:
            raise NetworkFailureError(self.fail[key])

    async def list_profiles(self):
        self.calls.append(("profiles", ""))
        await self._maybe_wait(("profiles", ""))
        return list(self.profiles)

    async def list_compartments(self, profile, parent=None):
        target = parent or self.root_id
        self.calls.append(("compartments", parent or ""))
        await self._maybe_wait(("compartments", parent or ""))
        return [dict(item) for item in self.compartments.get(target, [])]

    async def list_policies(self, profile, compartment_id):
        self.calls.append(("policies", compartment_id))
        await self._maybe_wait(("policies", compartment_id))
        return [dict(item) for item in self.policies.get(compartment_id, [])]

    async def close(self):
        pass


@pytest.fixture
def oci_config_path(tmp_path: Path) -> Path:
    """An OCI CLI config file with DEFAULT and dev profiles."""
    path = tmp_path / "oci" / "config"
    path.parent.mkdir()
    path.write_text(OCI_CONFIG_TEXT)
    return path


@pytest.fixture
def config(tmp_path: Path, oci_config_path: Path) -> Config:
    """Provide a test configuration with temp paths."""
    return Config(
        server=ServerConfig(host="127.0.0.1", port=9999),
        oci=OCIConfig(config_path=str(oci_config_path)),
        logging=LoggingConfig(api_log_path=str(tmp_path / "api.log")),
    )


@pytest.fixture
def fake_identity() -> FakeIdentityClient:
    return FakeIdentityClient()


@pytest.fixture
def client_factory(fake_identity):
    """Records the constructor arguments and returns the shared fake client."""
    built: list[tuple[tuple, dict]] = []

    def factory(*args, **kwargs):
        built.append((args, kwargs))
        return fake_identity

    factory.built = built
    return factory


@pytest.fixture
def profile_strategy(oci_config_path, client_factory) -> ProfileAuthStrategy:
    return ProfileAuthStrategy(
        ConfigStore(oci_config_path),
        client_factory=client_factory,
        config_loader=lambda file_location, profile_name: {
            "file_location": file_location,
            "profile_name": profile_name,
        },
    )


@pytest.fixture
def fake_api() -> FakeCompartmentAPI:
    return FakeCompartmentAPI()
