"""Engine lifecycle: wires up the auth strategy and identity proxy."""

from __future__ import annotations

import logging

from canopy.auth.runtime import (
    MODE_INSTANCE_PRINCIPAL,
    AuthStrategy,
    select_auth_strategy,
)
from canopy.config import Config
from canopy.identity.proxy import IdentityProxy

logger = logging.getLogger(__name__)


class Engine:
    """Holds the server-side components. Created during server lifespan."""

    def __init__(
        self,
        config: Config,
        strategy: AuthStrategy,
        proxy: IdentityProxy | None = None,
    ):
        self.config = config
        self.strategy = strategy
        self.proxy = proxy or IdentityProxy(strategy)

    @property
    def mode(self) -> str:
        return self.strategy.mode

    async def shutdown(self) -> None:
        """Nothing pooled yet; kept for lifespan symmetry."""
        logger.debug("Engine shutdown")


def create_engine(config: Config, *, instance_principal: bool = False) -> Engine:
    """Select the auth mode and build the engine. Called once per process."""
    strategy = select_auth_strategy(
        instance_principal,
        config_path=config.oci.resolved_config_path,
        metadata_url=config.oci.metadata_url,
        metadata_timeout=config.oci.metadata_timeout_seconds,
    )
    if strategy.mode == MODE_INSTANCE_PRINCIPAL:
        logger.info(
            "Running in INSTANCE PRINCIPAL mode: all OCI API calls use the "
            "instance principal and expose only the 'instance-principal' profile."
        )
    else:
        logger.info("Reading OCI profiles from %s", config.oci.resolved_config_path)
    return Engine(config=config, strategy=strategy)
