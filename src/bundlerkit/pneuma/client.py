"""
HTTP JSON-RPC client for an ERC-4337 bundler.

Nothing is sent to the bundler before its chain id has been checked
against the one the caller expects. The check runs once per client;
its outcome, success or failure, is shared by every later call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from ..spec.models import UserOperation
from .hexlify import deep_hexlify, parse_quantity, resolve_properties
from .rpc import JsonRpcProvider, RpcProvider, TransportError

logger = logging.getLogger(__name__)

GAS_ESTIMATE_FIELDS = ("callGasLimit", "preVerificationGas", "verificationGas")

UserOpLike = Union[UserOperation, Mapping[str, Any]]


class ChainIdMismatchError(RuntimeError):
    def __init__(self, bundler_url: str, bundler_chain_id: int, expected_chain_id: int) -> None:
        super().__init__(
            f"bundler {bundler_url} is on chainId {bundler_chain_id}, "
            f"but provider is on chainId {expected_chain_id}"
        )
        self.bundler_url = bundler_url
        self.bundler_chain_id = bundler_chain_id
        self.expected_chain_id = expected_chain_id


class InertChannelError(RuntimeError):
    """Raised when a client built without a bundler URL is asked to send."""


def _consume_exception(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


class HttpRpcClient:
    """
    Submit and estimate user operations against one bundler.

    Args:
        bundler_url: Bundler endpoint; an empty string builds an inert client
        entry_point_address: EntryPoint contract the operations target
        chain_id: Chain id the bundler must report
        provider: Optional JSON-RPC provider (default: ``JsonRpcProvider(bundler_url)``)
    """

    def __init__(
        self,
        bundler_url: str,
        entry_point_address: str,
        chain_id: int,
        provider: Optional[RpcProvider] = None,
    ) -> None:
        self.bundler_url = bundler_url
        self.entry_point_address = entry_point_address
        self.chain_id = chain_id
        self._initializing: Optional[asyncio.Future] = None

        if bundler_url == "":
            self._provider: Optional[RpcProvider] = None
            return

        self._provider = provider or JsonRpcProvider(bundler_url)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: the first caller starts the check.
            return
        self._initializing = self._start_check()

    def _start_check(self) -> asyncio.Future:
        task = asyncio.ensure_future(self._check_chain_id())
        # Mark a failure as retrieved; awaiters still get it re-raised.
        task.add_done_callback(_consume_exception)
        return task

    @property
    def inert(self) -> bool:
        return self._provider is None

    async def _check_chain_id(self) -> None:
        chain = await self._provider.send("eth_chainId", [])
        try:
            bundler_chain = parse_quantity(chain)
        except (TypeError, ValueError) as exc:
            raise TransportError(f"Bundler {self.bundler_url} returned invalid chainId {chain!r}") from exc
        if bundler_chain != self.chain_id:
            raise ChainIdMismatchError(self.bundler_url, bundler_chain, self.chain_id)
        logger.info("bundler %s is on chainId %d", self.bundler_url, bundler_chain)

    def _require_provider(self) -> RpcProvider:
        if self._provider is None:
            raise InertChannelError(
                "HttpRpcClient was created without a bundler URL and cannot send requests"
            )
        return self._provider

    async def validate_chain_id(self) -> None:
        """
        Wait for the chain id check.

        Raises:
            ChainIdMismatchError: If the bundler is on another chain
            InertChannelError: If the client has no bundler URL
        """
        self._require_provider()
        if self._initializing is None:
            self._initializing = self._start_check()
        # shield: a cancelled caller must not cancel the shared check
        await asyncio.shield(self._initializing)

    async def _prepare(self, user_op: UserOpLike) -> dict[str, Any]:
        if isinstance(user_op, UserOperation):
            user_op = user_op.to_dict()
        resolved = await resolve_properties(user_op)
        return deep_hexlify(resolved)

    async def _send_user_op(self, method: str, user_op: UserOpLike) -> Any:
        provider = self._require_provider()
        await self.validate_chain_id()
        hexified = await self._prepare(user_op)
        logger.debug("sending %s %s %s", method, hexified, self.entry_point_address)
        return await provider.send(method, [hexified, self.entry_point_address])

    async def send_user_op_to_bundler(self, user_op: UserOpLike) -> str:
        """
        Send a user operation to the bundler.

        Returns:
            userOpHash, the id of the operation
        """
        result = await self._send_user_op("eth_sendUserOperation", user_op)
        if not isinstance(result, str):
            raise TransportError(f"Bundler returned invalid user operation hash: {result!r}")
        return result

    async def estimate_user_op_gas(self, user_op: UserOpLike) -> dict[str, Any]:
        """
        Estimate gas for a (possibly partial) user operation.

        Returns:
            The bundler's estimate with ``callGasLimit``,
            ``preVerificationGas`` and ``verificationGas`` as ints
        """
        result = await self._send_user_op("eth_estimateUserOperationGas", user_op)
        if not isinstance(result, dict):
            raise TransportError(f"Bundler returned invalid gas estimate: {result!r}")

        estimate = dict(result)
        if "verificationGas" not in estimate and "verificationGasLimit" in estimate:
            estimate["verificationGas"] = estimate["verificationGasLimit"]
        missing = [name for name in GAS_ESTIMATE_FIELDS if estimate.get(name) is None]
        if missing:
            raise TransportError(f"Bundler gas estimate is missing {', '.join(missing)}")
        for name in GAS_ESTIMATE_FIELDS:
            try:
                estimate[name] = parse_quantity(estimate[name])
            except (TypeError, ValueError) as exc:
                raise TransportError(
                    f"Bundler gas estimate has invalid {name}: {estimate[name]!r}"
                ) from exc
        return estimate

    async def supported_entry_points(self) -> list[str]:
        provider = self._require_provider()
        await self.validate_chain_id()
        return await provider.send("eth_supportedEntryPoints", [])

    async def get_user_operation_receipt(self, user_op_hash: str) -> Optional[dict[str, Any]]:
        """Receipt for a submitted operation, or None while it is pending."""
        provider = self._require_provider()
        await self.validate_chain_id()
        result = await provider.send("eth_getUserOperationReceipt", [user_op_hash])
        if result is not None and not isinstance(result, dict):
            raise TransportError(f"Bundler returned invalid receipt: {result!r}")
        return result

    async def aclose(self) -> None:
        close = getattr(self._provider, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "HttpRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
