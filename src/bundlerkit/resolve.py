"""
Startup configuration resolution.

    program options ──┐
    config file ──────┼─► merge + validate ─► BundlerConfig
    defaults ─────────┘                         │
                                network ────────┼─► provider
                                mnemonic ───────┴─► signing identity

Everything the resolver needs from the process environment is read once
into a ``ResolutionContext``; nothing below looks at ``os.environ``.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, NamedTuple, Optional

from dotenv import load_dotenv

from .pneuma.rpc import JsonRpcProvider, RpcProvider
from .sigil.eth import SigningIdentity, derive_signing_identity
from .spec.config import (
    BUNDLER_CONFIG_DEFAULTS,
    DEFAULT_CONFIG_FILE,
    BundlerConfig,
    ConfigurationError,
    extract_overrides,
    load_file_layer,
    merge_layers,
)

logger = logging.getLogger(__name__)

TEST_NETWORK_ALIAS = "tester"
DEFAULT_NETWORK_ENDPOINT = "https://ethereum-goerli.publicnode.com"
API_KEY_ENV = "BUNDLER_API_KEY"

_ALIAS_RE = re.compile(r"^[\w-]+$")


@dataclass(frozen=True)
class ResolutionContext:
    """
    Inputs to resolution that do not come from configuration layers.

    Attributes:
        api_key: Substituted for ``{api_key}`` in alias endpoints
        alias_endpoints: Network alias -> endpoint URL
        default_endpoint: Endpoint for aliases missing from the table
        test_provider: Provider used when ``network`` is the test alias
    """

    api_key: Optional[str] = None
    alias_endpoints: Mapping[str, str] = field(default_factory=dict)
    default_endpoint: str = DEFAULT_NETWORK_ENDPOINT
    test_provider: Optional[RpcProvider] = None

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None, **kwargs: Any) -> "ResolutionContext":
        """Read the API key from the environment (and an optional .env file)."""
        if env_path is not None and Path(env_path).exists():
            load_dotenv(env_path, override=False)
        kwargs.setdefault("api_key", os.environ.get(API_KEY_ENV) or None)
        return cls(**kwargs)


class ResolvedConfiguration(NamedTuple):
    config: BundlerConfig
    provider: RpcProvider
    wallet: SigningIdentity

    async def aclose(self) -> None:
        """Close the provider if it holds connections."""
        close = getattr(self.provider, "aclose", None)
        if close is not None:
            await close()


def is_network_alias(network: str) -> bool:
    return _ALIAS_RE.match(network) is not None


def resolve_network_endpoint(network: str, context: Optional[ResolutionContext] = None) -> RpcProvider:
    """
    Turn the ``network`` config value into a provider.

    The test alias selects ``context.test_provider``. Any other bare token
    (no scheme) is an alias looked up in ``context.alias_endpoints``,
    falling back to ``context.default_endpoint``. Everything else is a URL.
    """
    context = context or ResolutionContext()

    if network == TEST_NETWORK_ALIAS:
        if context.test_provider is None:
            raise ConfigurationError(
                f"network {TEST_NETWORK_ALIAS!r} requires a test provider in the resolution context"
            )
        return context.test_provider

    url = network
    if is_network_alias(network):
        url = context.alias_endpoints.get(network, context.default_endpoint)
        if "{api_key}" in url:
            if not context.api_key:
                raise ConfigurationError(
                    f"endpoint for network {network!r} needs an API key; set {API_KEY_ENV}"
                )
            url = url.replace("{api_key}", context.api_key)

    shown = url.replace(context.api_key, "***") if context.api_key else url
    logger.info("network %s -> %s", network, shown)
    return JsonRpcProvider(url)


def resolve_configuration(
    program_opts: Mapping[str, Any],
    context: Optional[ResolutionContext] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> ResolvedConfiguration:
    """
    Build the configuration, provider and signer from all sources.

    Args:
        program_opts: Raw option bag (CLI); ``config`` names the config file
        context: Environment-derived inputs (default: empty context)
        defaults: Default layer (default: ``BUNDLER_CONFIG_DEFAULTS``)

    Raises:
        SchemaValidationError: Merged configuration has the wrong shape
        ConfigSourceError: Config file exists but is unreadable or invalid
        IdentityDerivationError: Mnemonic file missing or invalid
    """
    context = context or ResolutionContext()
    overrides = extract_overrides(program_opts)
    config_file = program_opts.get("config", DEFAULT_CONFIG_FILE)
    file_layer = load_file_layer(config_file)

    config = merge_layers(
        BUNDLER_CONFIG_DEFAULTS if defaults is None else defaults,
        file_layer,
        overrides,
    )
    logger.info("Merged configuration: %s", config.to_json())

    provider = resolve_network_endpoint(config["network"], context)
    wallet = derive_signing_identity(config["mnemonic"], provider)
    logger.info("signer address %s", wallet.address)
    return ResolvedConfiguration(config=config, provider=provider, wallet=wallet)
