from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

# Python attribute name -> JSON-RPC field name (EntryPoint v0.6 layout)
WIRE_NAMES = {
    "sender": "sender",
    "nonce": "nonce",
    "init_code": "initCode",
    "call_data": "callData",
    "call_gas_limit": "callGasLimit",
    "verification_gas_limit": "verificationGasLimit",
    "pre_verification_gas": "preVerificationGas",
    "max_fee_per_gas": "maxFeePerGas",
    "max_priority_fee_per_gas": "maxPriorityFeePerGas",
    "paymaster_and_data": "paymasterAndData",
    "signature": "signature",
}

# 65 zero bytes; bundlers need a signature-shaped value to estimate gas.
DUMMY_SIGNATURE = "0x" + "00" * 65


@dataclass
class UserOperation:
    """
    An ERC-4337 user operation.

    Every field may be unset (None) or hold an awaitable that resolves
    later; ``HttpRpcClient`` resolves and hex-encodes before sending.
    """

    sender: Any = None
    nonce: Any = None
    init_code: Any = None
    call_data: Any = None
    call_gas_limit: Any = None
    verification_gas_limit: Any = None
    pre_verification_gas: Any = None
    max_fee_per_gas: Any = None
    max_priority_fee_per_gas: Any = None
    paymaster_and_data: Any = None
    signature: Any = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserOperation":
        """Build from wire (camelCase) or attribute (snake_case) names."""
        by_wire = {wire: attr for attr, wire in WIRE_NAMES.items()}
        kwargs: dict[str, Any] = {}
        for key, value in payload.items():
            attr = by_wire.get(key, key)
            if attr not in WIRE_NAMES:
                raise ValueError(f"Unknown user operation field: {key}")
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Wire-named mapping of the fields that are set."""
        return {
            WIRE_NAMES[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
