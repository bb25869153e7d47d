"""Configuration loader for Canopy.

Loads from canopy.toml with sensible defaults when file is absent.
Environment variables override file values. Configuration is loaded once
at startup and passed via dependency injection.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_OCI_CONFIG_PATH = "~/.oci/config"
DEFAULT_METADATA_URL = "http://169.254.169.254/opc/v1/instance/"
DEFAULT_BACKEND_URL = "http://localhost:3001"


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class OCIConfig:
    """Where credentials and instance metadata come from."""

    config_path: str = DEFAULT_OCI_CONFIG_PATH
    metadata_url: str = DEFAULT_METADATA_URL
    metadata_timeout_seconds: float = 5.0

    @property
    def resolved_config_path(self) -> Path:
        return Path(self.config_path).expanduser()


@dataclass(frozen=True)
class ClientConfig:
    backend_url: str = DEFAULT_BACKEND_URL
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    api_log_path: str = "api.log"

    @property
    def resolved_api_log_path(self) -> Path:
        return Path(self.api_log_path).expanduser()


@dataclass(frozen=True)
class Config:
    """Top-level Canopy configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    oci: OCIConfig = field(default_factory=OCIConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _coerce_port(raw: object, *, source: str) -> int:
    try:
        port = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid port in {source}: {raw!r}") from e
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range in {source}: {port}")
    return port


def apply_env_overrides(
    config: Config, environ: Mapping[str, str] | None = None,
) -> Config:
    """Layer PORT, LOG_LEVEL, CANOPY_BACKEND_URL and OCI_CLI_CONFIG_FILE."""
    env = os.environ if environ is None else environ

    server = config.server
    port_raw = str(env.get("PORT", "")).strip()
    if port_raw:
        server = replace(server, port=_coerce_port(port_raw, source="PORT"))

    logging_cfg = config.logging
    level = str(env.get("LOG_LEVEL", "")).strip()
    if level:
        logging_cfg = replace(logging_cfg, level=level.upper())

    client = config.client
    backend_url = str(env.get("CANOPY_BACKEND_URL", "")).strip()
    if backend_url:
        client = replace(client, backend_url=backend_url)

    oci = config.oci
    oci_path = str(env.get("OCI_CLI_CONFIG_FILE", "")).strip()
    if oci_path:
        oci = replace(oci, config_path=oci_path)

    return replace(
        config, server=server, logging=logging_cfg, client=client, oci=oci,
    )


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from a TOML file.

    If path is None, searches for canopy.toml in current directory then
    ~/.canopy/. Returns default config (plus environment overrides) if no
    file is found.
    """
    if path is None:
        candidates = [
            Path.cwd() / "canopy.toml",
            Path.home() / ".canopy" / "canopy.toml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None or not path.exists():
        return apply_env_overrides(Config(), environ)

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    server_data = raw.get("server", {})
    origins = server_data.get("cors_origins", ["*"])
    if isinstance(origins, str):
        origins = [origins]
    server = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=_coerce_port(server_data.get("port", 3001), source=str(path)),
        cors_origins=[str(o) for o in origins],
    )

    oci_data = raw.get("oci", {})
    oci = OCIConfig(
        config_path=oci_data.get("config_path", DEFAULT_OCI_CONFIG_PATH),
        metadata_url=oci_data.get("metadata_url", DEFAULT_METADATA_URL),
        metadata_timeout_seconds=float(
            oci_data.get("metadata_timeout_seconds", 5.0)
        ),
    )

    client_data = raw.get("client", {})
    client = ClientConfig(
        backend_url=client_data.get("backend_url", DEFAULT_BACKEND_URL),
        timeout_seconds=float(client_data.get("timeout_seconds", 30.0)),
    )

    log_data = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=str(log_data.get("level", "INFO")).upper(),
        api_log_path=log_data.get("api_log_path", "api.log"),
    )

    return apply_env_overrides(
        Config(server=server, oci=oci, client=client, logging=logging_cfg),
        environ,
    )
