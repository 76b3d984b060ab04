"""Click-based CLI entrypoint for debuglogs-gateway."""

from __future__ import annotations

import logging
import os

import click

from debuglogs_gateway.config import load_config
from debuglogs_gateway.errors import ConfigError, InvalidDebugLogsURL
from debuglogs_gateway.logging_config import setup_logging
from debuglogs_gateway.remote_object import parse_debuglogs_url

logger = logging.getLogger(__name__)

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file (default: $GATEWAY_CONFIG_PATH).",
)


def _load(config_path: str | None):
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group()
def cli() -> None:
    """Debug-log gateway."""


@cli.command()
@click.option("--host", default=lambda: os.environ.get("GATEWAY_HOST", "0.0.0.0"), show_default="0.0.0.0")
@click.option("--port", type=int, default=lambda: int(os.environ.get("GATEWAY_PORT", 8080)), show_default="8080")
@config_option
def serve(host: str, port: int, config_path: str | None) -> None:
    """Run the gateway with Flask's built-in server."""
    from debuglogs_gateway.gateway import create_app

    config = _load(config_path)
    setup_logging(config)
    logger.info(f"Starting debug-log gateway on {host}:{port} -> {config.upstream_url}")
    create_app(config).run(host=host, port=port, debug=False)


@cli.command()
@click.argument("url")
@config_option
def resolve(url: str, config_path: str | None) -> None:
    """Print the gateway URL for a debuglogs.org link."""
    config = _load(config_path)
    try:
        remote = parse_debuglogs_url(url, config.upstream_url)
    except InvalidDebugLogsURL as e:
        raise click.BadParameter(str(e), param_hint="URL")
    click.echo(remote.gateway_url(config.public_url))


if __name__ == "__main__":
    cli()
