from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

import pytest

TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"


class FakeProvider:
    """
    In-memory JSON-RPC provider.

    ``responses`` maps a method to a value, an exception to raise, or a
    callable receiving the params. ``gate`` (an asyncio.Event) holds
    eth_chainId until it is set.
    """

    def __init__(self, responses: dict[str, Any] | None = None, gate: asyncio.Event | None = None) -> None:
        self.responses = {"eth_chainId": "0x5", **(responses or {})}
        self.gate = gate
        self.calls: list[tuple[str, list]] = []

    def __repr__(self) -> str:
        return "FakeProvider()"

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    async def send(self, method: str, params: list) -> Any:
        self.calls.append((method, params))
        if method == "eth_chainId" and self.gate is not None:
            await self.gate.wait()
        value = self.responses[method]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(params)
        return value


@pytest.fixture()
def make_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture()
def mnemonic_file(tmp_path: Path) -> Path:
    path = tmp_path / "mnemonic.txt"
    path.write_text(f"  {TEST_MNEMONIC}\n\n", encoding="utf-8")
    return path
