__all__ = [
    # Configuration
    "BundlerConfig",
    "BUNDLER_CONFIG_DEFAULTS",
    "extract_overrides",
    "merge_layers",
    "load_file_layer",
    # Resolution
    "ResolutionContext",
    "ResolvedConfiguration",
    "resolve_configuration",
    "resolve_network_endpoint",
    # Identity
    "SigningIdentity",
    "derive_signing_identity",
    # Bundler RPC
    "HttpRpcClient",
    "JsonRpcProvider",
    "UserOperation",
    "deep_hexlify",
    "resolve_properties",
    # Errors
    "SchemaValidationError",
    "ConfigurationError",
    "ConfigSourceError",
    "IdentityDerivationError",
    "ChainIdMismatchError",
    "InertChannelError",
    "TransportError",
    "RpcError",
]

from .spec.config import (
    BUNDLER_CONFIG_DEFAULTS,
    BundlerConfig,
    ConfigSourceError,
    ConfigurationError,
    extract_overrides,
    load_file_layer,
    merge_layers,
)
from .spec.models import UserOperation
from .spec.schemas import SchemaValidationError
from .sigil.eth import IdentityDerivationError, SigningIdentity, derive_signing_identity
from .pneuma.client import ChainIdMismatchError, HttpRpcClient, InertChannelError
from .pneuma.hexlify import deep_hexlify, resolve_properties
from .pneuma.rpc import JsonRpcProvider, RpcError, TransportError
from .resolve import (
    ResolutionContext,
    ResolvedConfiguration,
    resolve_configuration,
    resolve_network_endpoint,
)
