"""
Async JSON-RPC client.

Lightweight alternative to web3.py: httpx for HTTP, nothing else.
Failures are raised to the caller as-is; there is no retry here.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class TransportError(RuntimeError):
    """The endpoint answered with something that is not a JSON-RPC result."""


class RpcError(TransportError):
    """The endpoint returned a JSON-RPC error object."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None) -> None:
        super().__init__(f"RPC error from {method} ({code}): {message}")
        self.method = method
        self.code = code
        self.data = data


class RpcProvider(Protocol):
    """Anything that can send a JSON-RPC request and return its result."""

    async def send(self, method: str, params: list) -> Any:
        ...


class JsonRpcProvider:
    """
    JSON-RPC 2.0 over HTTP POST.

    Args:
        url: Endpoint URL
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport
        # Opened on first send; closed by aclose().
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"JsonRpcProvider({self.url!r})"

    async def send(self, method: str, params: list) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            The ``result`` field of the response

        Raises:
            httpx.HTTPError: On network failure or a non-2xx status
            RpcError: If the response carries an ``error`` object
            TransportError: If the response is not a JSON-RPC response
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("rpc -> %s %s", self.url, payload)

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Malformed response from {self.url} for {method}: {exc}") from exc

        if not isinstance(data, dict):
            raise TransportError(f"Malformed response from {self.url} for {method}: {data!r}")

        if data.get("error") is not None:
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(method, error.get("code"), str(error.get("message", "")), error.get("data"))
            raise RpcError(method, None, str(error))

        if "result" not in data:
            raise TransportError(f"Response from {self.url} for {method} has no result")

        return data["result"]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "JsonRpcProvider":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
