"""
bundlerkit CLI

Commands:
  config    - Print the resolved configuration
  whoami    - Show the signer address derived from the mnemonic
  estimate  - Ask a bundler for a gas estimate of a user operation
  send      - Submit a user operation to a bundler
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click
import httpx

from .pneuma.client import ChainIdMismatchError, HttpRpcClient, InertChannelError
from .pneuma.rpc import TransportError
from .resolve import ResolutionContext, ResolvedConfiguration, resolve_configuration
from .spec.config import (
    BUNDLER_CONFIG_DEFAULTS,
    DEFAULT_CONFIG_FILE,
    ConfigurationError,
    load_file_layer,
)
from .spec.models import UserOperation
from .spec.schemas import SchemaValidationError, load_json

VERSION = "0.3.0"

# CLI parameter name -> configuration key
OPTION_KEYS = {
    "network": "network",
    "mnemonic": "mnemonic",
    "entry_point": "entryPoint",
    "beneficiary": "beneficiary",
    "unsafe": "unsafe",
}


def config_options(func: Callable) -> Callable:
    """Options shared by every command that resolves a configuration."""
    decorators = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=DEFAULT_CONFIG_FILE,
            show_default=True,
            help="JSON config file (ignored if missing)",
        ),
        click.option("--network", help="Network URL or alias"),
        click.option("--mnemonic", help="File holding the signer mnemonic"),
        click.option("--entry-point", "entry_point", help="EntryPoint contract address"),
        click.option("--beneficiary", help="Address receiving bundle fees"),
        click.option("--unsafe/--no-unsafe", default=None, help="Skip storage access checks"),
        click.option(
            "--env-file",
            type=click.Path(dir_okay=False, path_type=Path),
            default=None,
            help=".env file to read BUNDLER_API_KEY from",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _program_opts(opts: dict[str, Any]) -> dict[str, Any]:
    raw = {OPTION_KEYS.get(name, name): value for name, value in opts.items()}
    raw["config"] = raw.pop("config_path", None)
    return raw


def _resolve(opts: dict[str, Any]) -> ResolvedConfiguration:
    context = ResolutionContext.from_env(opts.pop("env_file", None))
    try:
        return resolve_configuration(_program_opts(opts), context=context)
    except (SchemaValidationError, ConfigurationError) as exc:
        raise click.ClickException(str(exc)) from exc


def _load_user_op(path: Path) -> UserOperation:
    try:
        return UserOperation.from_dict(load_json(path))
    except (OSError, ValueError, AttributeError) as exc:
        raise click.ClickException(f"Invalid user operation file {path}: {exc}") from exc


async def _with_client(
    bundler_url: str,
    entry_point: str,
    chain_id: int,
    call: Callable[[HttpRpcClient], Any],
) -> Any:
    async with HttpRpcClient(bundler_url, entry_point, chain_id) as client:
        return await call(client)


def _run_bundler_call(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except (ChainIdMismatchError, InertChannelError, TransportError, httpx.HTTPError) as exc:
        raise click.ClickException(str(exc)) from exc
    except (TypeError, ValueError) as exc:
        raise click.ClickException(f"Cannot encode user operation: {exc}") from exc


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="bundlerkit")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """bundlerkit - ERC-4337 bundler client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@config_options
def config(**opts: Any) -> None:
    """Print the merged configuration."""
    resolved = _resolve(opts)
    click.echo(json.dumps(resolved.config.to_dict(), indent=2, sort_keys=True))
    click.echo(f"Signer: {resolved.wallet.address}")


@cli.command()
@config_options
def whoami(**opts: Any) -> None:
    """Show the signer address."""
    resolved = _resolve(opts)
    click.echo(f"Address: {resolved.wallet.address}")


def bundler_options(func: Callable) -> Callable:
    decorators = [
        click.option("--bundler-url", required=True, help="Bundler JSON-RPC URL"),
        click.option("--chain-id", required=True, type=int, help="Chain id the bundler must be on"),
        click.option(
            "--userop",
            "userop_path",
            required=True,
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="JSON file with the user operation",
        ),
        click.option("--entry-point", "entry_point", help="EntryPoint address (default: from config)"),
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=DEFAULT_CONFIG_FILE,
            show_default=True,
            help="JSON config file (ignored if missing)",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _entry_point_from(config_path: Path) -> str:
    try:
        file_layer = load_file_layer(config_path)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    return file_layer.get("entryPoint", BUNDLER_CONFIG_DEFAULTS["entryPoint"])


@cli.command()
@bundler_options
def estimate(
    bundler_url: str,
    chain_id: int,
    userop_path: Path,
    entry_point: Optional[str],
    config_path: Path,
) -> None:
    """Estimate gas for a user operation."""
    entry_point = entry_point or _entry_point_from(config_path)
    user_op = _load_user_op(userop_path)
    result = _run_bundler_call(
        _with_client(bundler_url, entry_point, chain_id, lambda c: c.estimate_user_op_gas(user_op))
    )
    click.echo(json.dumps(result, indent=2, sort_keys=True))


@cli.command()
@bundler_options
def send(
    bundler_url: str,
    chain_id: int,
    userop_path: Path,
    entry_point: Optional[str],
    config_path: Path,
) -> None:
    """Submit a signed user operation."""
    entry_point = entry_point or _entry_point_from(config_path)
    user_op = _load_user_op(userop_path)
    user_op_hash = _run_bundler_call(
        _with_client(bundler_url, entry_point, chain_id, lambda c: c.send_user_op_to_bundler(user_op))
    )
    click.echo(f"UserOp hash: {user_op_hash}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
