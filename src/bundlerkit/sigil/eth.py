"""
Signing identity derived from a BIP-39 mnemonic.

The phrase is read from a file named by the ``mnemonic`` config key and
derived on the standard Ethereum EOA path. The resulting account is bound
to one JSON-RPC provider, which it uses to fill in and send transactions.

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from ..pneuma.hexlify import parse_quantity
from ..pneuma.rpc import RpcProvider
from ..spec.config import ConfigurationError

ETH_DERIVATION_PATH = "m/44'/60'/0'/0/0"

Account.enable_unaudited_hdwallet_features()


class IdentityDerivationError(ConfigurationError):
    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to read --mnemonic {path}: {reason}")
        self.path = path


def account_from_mnemonic(mnemonic: str, account_path: str = ETH_DERIVATION_PATH) -> LocalAccount:
    return Account.from_mnemonic(mnemonic.strip(), account_path=account_path)


def read_mnemonic(mnemonic_path: Path | str) -> str:
    return Path(mnemonic_path).read_text(encoding="utf-8").strip()


@dataclass(frozen=True)
class SigningIdentity:
    """An account bound to the provider it sends transactions through."""

    account: LocalAccount
    provider: RpcProvider

    def __repr__(self) -> str:
        return f"SigningIdentity(address={self.address!r}, provider={self.provider!r})"

    @property
    def address(self) -> str:
        return self.account.address

    def sign_message(self, message: str) -> str:
        """
        Sign a message using EIP-191 personal_sign.

        Returns:
            0x-prefixed hex signature
        """
        signed = self.account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    async def populate_transaction(self, tx: dict[str, Any]) -> dict[str, Any]:
        """Fill nonce, chainId, gas price and gas limit where absent."""
        tx = dict(tx)
        tx.setdefault("from", self.address)
        if "nonce" not in tx:
            tx["nonce"] = parse_quantity(
                await self.provider.send("eth_getTransactionCount", [self.address, "pending"])
            )
        if "chainId" not in tx:
            tx["chainId"] = parse_quantity(await self.provider.send("eth_chainId", []))
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = parse_quantity(await self.provider.send("eth_gasPrice", []))
        if "gas" not in tx:
            call = {
                key: (hex(value) if isinstance(value, int) else value)
                for key, value in tx.items()
                if key in ("from", "to", "data", "value")
            }
            tx["gas"] = parse_quantity(await self.provider.send("eth_estimateGas", [call]))
        tx.pop("from")
        return tx

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """
        Sign a transaction and broadcast it through the bound provider.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        populated = await self.populate_transaction(tx)
        signed = self.account.sign_transaction(populated)
        raw_tx = "0x" + bytes(signed.raw_transaction).hex()
        return await self.provider.send("eth_sendRawTransaction", [raw_tx])


def derive_signing_identity(
    mnemonic_path: Path | str,
    provider: RpcProvider,
    account_path: Optional[str] = None,
) -> SigningIdentity:
    """
    Read the mnemonic file and derive the signer bound to ``provider``.

    Raises:
        IdentityDerivationError: If the file is missing, unreadable or
            does not hold a valid phrase. The original error is chained.
    """
    try:
        mnemonic = read_mnemonic(mnemonic_path)
        account = account_from_mnemonic(mnemonic, account_path or ETH_DERIVATION_PATH)
    except Exception as exc:
        raise IdentityDerivationError(mnemonic_path, str(exc)) from exc
    return SigningIdentity(account=account, provider=provider)
