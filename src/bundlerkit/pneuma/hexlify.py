"""
Wire encoding for bundler JSON-RPC payloads.

Two steps, kept separate:

1. ``resolve_properties`` awaits every pending value inside a structure
   (coroutines, tasks, futures) and returns a fully concrete copy.
2. ``deep_hexlify`` turns a concrete structure into JSON-safe data where
   every leaf is a lowercase ``0x``-prefixed hex string.
"""

from __future__ import annotations

import asyncio
import inspect
import re
from typing import Any, Mapping

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


def is_hex_string(value: Any) -> bool:
    return isinstance(value, str) and _HEX_RE.match(value) is not None


async def resolve_properties(value: Any) -> Any:
    """Recursively await pending values; the input is left untouched."""
    if inspect.isawaitable(value):
        value = await value
        return await resolve_properties(value)

    if isinstance(value, Mapping):
        keys = list(value.keys())
        resolved = await asyncio.gather(*(resolve_properties(value[k]) for k in keys))
        return dict(zip(keys, resolved))

    if isinstance(value, (list, tuple)):
        return list(await asyncio.gather(*(resolve_properties(item) for item in value)))

    return value


def to_quantity(value: int) -> str:
    """Encode a non-negative integer as a minimal hex quantity ("0x0", "0x1f")."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Cannot hex-encode negative value {value}")
    return hex(value)


def parse_quantity(value: Any) -> int:
    """
    Parse a JSON-RPC quantity.

    Accepts an int, a ``0x`` hex string, or a decimal string.
    """
    if isinstance(value, bool):
        raise TypeError("Expected a quantity, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text[:2].lower() == "0x":
            return int(text, 16)
        return int(text, 10)
    raise TypeError(f"Expected a quantity, got {type(value).__name__}")


def deep_hexlify(value: Any) -> Any:
    """
    Canonicalize a concrete value for the wire.

    Mappings keep their keys, sequences become lists, ints and byte
    strings become lowercase hex, hex strings are lowercased. ``None``
    is kept so optional fields serialize as ``null``. Anything else is
    rejected. Applying it twice gives the same result as applying it once.

    Raises:
        TypeError: For bools, awaitables and unsupported types.
        ValueError: For negative ints and strings that are not hex.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("Booleans have no hex wire encoding")
    if isinstance(value, int):
        return to_quantity(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        if not is_hex_string(value):
            raise ValueError(f"Not a hex string: {value!r}")
        return value.lower()
    if isinstance(value, Mapping):
        return {key: deep_hexlify(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [deep_hexlify(item) for item in value]
    if inspect.isawaitable(value):
        raise TypeError("Unresolved value; call resolve_properties first")
    raise TypeError(f"Cannot hex-encode value of type {type(value).__name__}")
