"""Nidus CLI - Main Entry Point.

Commands:
    run     - Bootstrap a module and serve it with uvicorn
    routes  - Bootstrap a module and list its mounted layers
"""

import asyncio
import importlib
import inspect
import json
import logging
import sys
from typing import Optional, Tuple

import click

from . import __version__
from .config import ConfigError, ConfigLoader
from .faults import Fault
from .module import LOG_FORMAT, AppModule


logger = logging.getLogger("nidus.cli")


def load_module(target: str) -> AppModule:
    """
    Import ``package.module:attr`` and return the ``AppModule`` it names.

    ``attr`` may be an ``AppModule`` instance, an ``AppModule`` subclass or
    a zero-argument factory returning one. Without ``:attr`` the attribute
    ``app_module`` is used.
    """
    module_name, _, attr = target.partition(":")
    attr = attr or "app_module"
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"Cannot import {module_name!r}: {exc}", param_hint="TARGET") from exc

    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise click.BadParameter(f"{module_name!r} has no attribute {attr!r}", param_hint="TARGET") from exc

    if inspect.isclass(obj) and issubclass(obj, AppModule):
        obj = obj()
    elif callable(obj) and not isinstance(obj, AppModule):
        obj = obj()

    if not isinstance(obj, AppModule):
        raise click.BadParameter(f"{target!r} is not an AppModule (got {type(obj).__name__})", param_hint="TARGET")
    return obj


@click.group()
@click.version_option(version=__version__, prog_name="nidus")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, verbose: bool):
    """Compose and serve Nidus applications."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command("run")
@click.argument("target")
@click.option("--host", type=str, default=None, help="Host to bind to")
@click.option("--port", type=int, default=None, help="Port to bind to")
@click.option("--log-level", type=click.Choice(["critical", "error", "warning", "info", "debug"]), default=None)
@click.option("--config", "config_paths", multiple=True, help="JSON/YAML config file (repeatable)")
@click.option("--env-file", type=str, default=None, help="Path to a .env file")
@click.pass_context
def run(ctx, target: str, host: Optional[str], port: Optional[int], log_level: Optional[str],
        config_paths: Tuple[str, ...], env_file: Optional[str]):
    """
    Bootstrap TARGET and serve it.

    Examples:
      nidus run examples.users_app.main:create_main_module
      nidus run examples.users_app.main:create_main_module --port=8080
    """
    overrides = {
        key: value
        for key, value in (("host", host), ("port", port), ("log_level", log_level))
        if value is not None
    }
    try:
        loader = ConfigLoader.load(
            paths=list(config_paths),
            env_file=env_file,
            overrides={"server": overrides} if overrides else None,
        )
        server = loader.server_config()
    except ConfigError as exc:
        click.echo(f"✗ Configuration error: {exc.message}", err=True)
        sys.exit(2)

    if ctx.obj["verbose"]:
        server.log_level = "debug"

    app_module = load_module(target)
    try:
        app_module.run(host=server.host, port=server.port, log_level=server.log_level)
    except KeyboardInterrupt:
        click.echo("\n✓ Server stopped")
    except Fault as exc:
        click.echo(f"✗ {exc}", err=True)
        sys.exit(1)


@cli.command("routes")
@click.argument("target")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def routes(ctx, target: str, as_json: bool):
    """
    Bootstrap TARGET and list its layers in dispatch order.

    Examples:
      nidus routes examples.users_app.main:create_main_module
    """
    logging.basicConfig(
        level=logging.DEBUG if ctx.obj["verbose"] else logging.WARNING,
        format=LOG_FORMAT,
    )
    app_module = load_module(target)
    try:
        asyncio.run(app_module.bootstrap())
    except Fault as exc:
        click.echo(f"✗ {exc}", err=True)
        sys.exit(1)

    layers = app_module.routes()
    if as_json:
        click.echo(json.dumps(layers, indent=2))
        return

    for layer in layers:
        click.echo(
            f"{layer['kind']:<10} {(layer['method'] or '*'):<7} {layer['path']:<32} {layer['handler']}"
        )


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
