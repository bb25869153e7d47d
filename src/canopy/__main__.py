"""CLI entry point for Canopy."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from canopy import __version__
from canopy.config import Config, ConfigError, load_config


def _backend_url(config: Config, server_url: str | None) -> str:
    return server_url or config.client.backend_url


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="canopy")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to canopy.toml configuration file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Canopy: browse OCI compartments and IAM policies."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Config error: {e}", err=True)
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        # Default: launch the TUI
        _launch_tui(ctx.obj["config"], None)


def _launch_tui(config: Config, server_url: str | None) -> None:
    """Launch the Canopy TUI against a running server."""
    from canopy.tui.api_client import CanopyAPIClient
    from canopy.tui.app import CanopyApp

    api = CanopyAPIClient(
        _backend_url(config, server_url),
        timeout=config.client.timeout_seconds,
    )
    CanopyApp(api=api).run()


@cli.command()
@click.option("--server", "server_url", default=None, help="Backend URL.")
@click.pass_context
def browse(ctx: click.Context, server_url: str | None) -> None:
    """Open the compartment browser (same as running with no subcommand)."""
    _launch_tui(ctx.obj["config"], server_url)


@cli.command()
@click.option(
    "--instance-principal",
    is_flag=True,
    default=False,
    help="Authenticate as this instance; ignore the OCI config file.",
)
@click.option("--host", default=None, help="Override server host.")
@click.option("--port", default=None, type=int, help="Override server port.")
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
@click.pass_context
def serve(
    ctx: click.Context,
    instance_principal: bool,
    host: str | None,
    port: int | None,
    log_level: str | None,
) -> None:
    """Start the Canopy API server."""
    from dataclasses import replace

    config: Config = ctx.obj["config"]
    if log_level:
        config = replace(
            config, logging=replace(config.logging, level=log_level.upper()),
        )
    actual_host = host if host is not None else config.server.host
    actual_port = port if port is not None else config.server.port

    from canopy.logging_setup import configure_logging

    configure_logging(config.logging)

    mode = "instance principal" if instance_principal else "config profiles"
    click.echo(f"Starting Canopy server on {actual_host}:{actual_port} ({mode})")

    import uvicorn

    from canopy.api.server import create_app

    try:
        app = create_app(config, instance_principal=instance_principal)
        uvicorn.run(
            app,
            host=actual_host,
            port=actual_port,
            log_level=config.logging.level.lower(),
        )
    except Exception as e:
        click.echo(f"Server failed to start: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--server", "server_url", default=None, help="Backend URL.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON.")
@click.pass_context
def profiles(ctx: click.Context, server_url: str | None, as_json: bool) -> None:
    """List the profiles a running server offers."""
    from canopy.exceptions import NetworkFailureError

    url = _backend_url(ctx.obj["config"], server_url)
    try:
        names = asyncio.run(_fetch_profiles(url))
    except NetworkFailureError as e:
        click.echo(f"Error: {e} ({url})", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({"profiles": names}, indent=2))
        return
    if not names:
        click.echo("No profiles configured.")
        return
    for name in names:
        click.echo(name)


async def _fetch_profiles(server_url: str) -> list[str]:
    from canopy.tui.api_client import CanopyAPIClient

    api = CanopyAPIClient(server_url)
    try:
        return await api.list_profiles()
    finally:
        await api.close()


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
