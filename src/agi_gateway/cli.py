"""agi-gateway CLI.

Usage:
    agi-gateway serve myapp.calls:app                 # Serve an AgiServer instance
    agi-gateway serve myapp.calls:handler --port 4574 # Serve a single handler
    agi-gateway --config agi.yaml serve myapp:app     # Settings from a YAML file
    agi-gateway config                                # Show resolved configuration
    agi-gateway config --json
"""

from __future__ import annotations

import asyncio
import importlib
import json
import logging
import sys

import click

from .config import LOG_LEVELS, ServerConfig
from .errors import ConfigError
from .server import AgiServer


def load_app(target: str, config: ServerConfig) -> AgiServer:
    """Resolve ``module:attribute`` to a server.

    The attribute may be an AgiServer or a single handler callable,
    which is wrapped in a new server.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"Expected 'module:attribute', got {target!r}", param_hint="APP")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import {module_name}: {e}", param_hint="APP") from e

    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        raise click.BadParameter(f"{module_name} has no attribute {attr!r}", param_hint="APP") from e

    if isinstance(obj, AgiServer):
        obj.config = config
        obj.silent = obj.silent or config.silent
        return obj
    if callable(obj):
        app = AgiServer(config)
        app.use(obj)
        return app
    raise click.BadParameter(f"{target} is neither an AgiServer nor a callable", param_hint="APP")


def _configure_logging(level: str) -> None:
    # Log to stderr; stdout stays free for command output
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """FastAGI gateway: serve middleware handlers to Asterisk."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _resolve_config(ctx: click.Context, **overrides: object) -> ServerConfig:
    try:
        return ServerConfig.load(ctx.obj.get("config_path"), **overrides)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


@main.command("serve")
@click.argument("app")
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--silent", is_flag=True, help="Do not report handler errors")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def serve(
    ctx: click.Context,
    app: str,
    host: str | None,
    port: int | None,
    silent: bool,
    log_level: str | None,
) -> None:
    """Serve APP (module:attribute) over FastAGI."""
    config = _resolve_config(ctx, host=host, port=port, silent=silent or None, log_level=log_level)
    _configure_logging(config.log_level)
    server = load_app(app, config)

    click.echo(f"Starting AGI server on {config.host}:{config.port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    try:
        asyncio.run(_run(server))
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


async def _run(server: AgiServer) -> None:
    await server.listen()
    try:
        await server.serve_forever()
    finally:
        await server.close()


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show_config(ctx: click.Context, output_json: bool) -> None:
    """Show the resolved configuration.

    Examples:

        agi-gateway config
        agi-gateway --config agi.yaml config --json
    """
    config = _resolve_config(ctx)

    if output_json:
        click.echo(json.dumps(config.to_dict(), indent=2))
        return

    click.echo("AGI Gateway Configuration")
    click.echo("-" * 40)
    click.echo(f"Listen address:     {config.host}:{config.port}")
    click.echo(f"Silent:             {config.silent}")
    click.echo(f"Log level:          {config.log_level}")
    click.echo(f"Read chunk size:    {config.read_chunk_size}")
    click.echo(f"Encoding:           {config.encoding}")


if __name__ == "__main__":
    main()
