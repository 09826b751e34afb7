"""Tests for the mnemonic-derived signing identity."""

from __future__ import annotations

from pathlib import Path

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from bundlerkit.sigil.eth import (
    ETH_DERIVATION_PATH,
    IdentityDerivationError,
    account_from_mnemonic,
    derive_signing_identity,
)

from conftest import TEST_ADDRESS, TEST_MNEMONIC

RECIPIENT = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class TestDerivation:
    """Deriving the account from a mnemonic file."""

    def test_standard_path(self) -> None:
        assert ETH_DERIVATION_PATH == "m/44'/60'/0'/0/0"
        assert account_from_mnemonic(TEST_MNEMONIC).address == TEST_ADDRESS

    def test_from_file_strips_whitespace(self, mnemonic_file: Path, make_provider) -> None:
        provider = make_provider()
        identity = derive_signing_identity(mnemonic_file, provider)
        assert identity.address == TEST_ADDRESS
        assert identity.provider is provider

    def test_missing_file(self, tmp_path: Path, make_provider) -> None:
        missing = tmp_path / "missing.txt"
        with pytest.raises(IdentityDerivationError) as excinfo:
            derive_signing_identity(missing, make_provider())
        assert excinfo.value.path == missing
        assert str(missing) in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)

    def test_invalid_phrase(self, tmp_path: Path, make_provider) -> None:
        path = tmp_path / "mnemonic.txt"
        path.write_text("apple banana\n", encoding="utf-8")
        with pytest.raises(IdentityDerivationError, match="Unable to read --mnemonic"):
            derive_signing_identity(path, make_provider())

    def test_repr_hides_key(self, mnemonic_file: Path, make_provider) -> None:
        identity = derive_signing_identity(mnemonic_file, make_provider())
        assert bytes(identity.account.key).hex() not in repr(identity)
        assert TEST_ADDRESS in repr(identity)


class TestSigning:
    """Signing and sending through the bound provider."""

    def test_sign_message(self, mnemonic_file: Path, make_provider) -> None:
        identity = derive_signing_identity(mnemonic_file, make_provider())
        signature = identity.sign_message("hello bundler")
        recovered = Account.recover_message(encode_defunct(text="hello bundler"), signature=signature)
        assert recovered == TEST_ADDRESS

    @pytest.mark.asyncio
    async def test_send_transaction_populates_and_signs(self, mnemonic_file: Path, make_provider) -> None:
        provider = make_provider({
            "eth_getTransactionCount": "0x3",
            "eth_gasPrice": "0x3b9aca00",
            "eth_estimateGas": "0x5208",
            "eth_sendRawTransaction": lambda params: "0x" + "11" * 32,
        })
        identity = derive_signing_identity(mnemonic_file, provider)

        tx_hash = await identity.send_transaction({"to": RECIPIENT, "value": 10**15, "data": "0x"})

        assert tx_hash == "0x" + "11" * 32
        assert provider.methods() == [
            "eth_getTransactionCount",
            "eth_chainId",
            "eth_gasPrice",
            "eth_estimateGas",
            "eth_sendRawTransaction",
        ]
        _, (estimate_call,) = provider.calls[3]
        assert estimate_call["value"] == hex(10**15)
        assert estimate_call["from"] == TEST_ADDRESS
        _, (raw_tx,) = provider.calls[-1]
        assert Account.recover_transaction(raw_tx) == TEST_ADDRESS

    @pytest.mark.asyncio
    async def test_populate_keeps_explicit_fields(self, mnemonic_file: Path, make_provider) -> None:
        provider = make_provider()
        identity = derive_signing_identity(mnemonic_file, provider)

        tx = await identity.populate_transaction({
            "to": RECIPIENT,
            "nonce": 0,
            "chainId": 5,
            "gasPrice": 1,
            "gas": 21000,
        })

        assert provider.calls == []
        assert tx == {"to": RECIPIENT, "nonce": 0, "chainId": 5, "gasPrice": 1, "gas": 21000}
