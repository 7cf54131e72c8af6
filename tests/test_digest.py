"""Tests for web3_infra/digest.py."""

from __future__ import annotations

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data
from eth_utils import keccak, to_checksum_address
from web3 import Web3

from models.order import OrderRecord
from web3_infra.digest import (
    DigestBuilder,
    SigningMode,
    order_hash,
    personal_message_hash,
)
from web3_infra.encoder import encode_order

# Well-known Hardhat/Anvil development key #0.
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
MAKER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
VERIFIER = to_checksum_address("0x845a2da2d70fede8474b1c8518200798c60ac364")
CHAIN_ID = 4162


def _make_order(**kwargs) -> OrderRecord:
    defaults = dict(
        market_hash="0x" + "ab" * 32,
        maker=MAKER,
        base_token="0x" + "11" * 20,
        executor="0x" + "22" * 20,
        total_bet_size=1_000_000,
        percentage_odds=5 * 10**19,
        salt=99,
        api_expiry=1_700_003_600,
        is_maker_betting_outcome_one=True,
        signature="0x" + "5a" * 65,
    )
    defaults.update(kwargs)
    return OrderRecord(**defaults)


@pytest.fixture
def builder() -> DigestBuilder:
    return DigestBuilder(CHAIN_ID, VERIFIER)


class TestOrderDigest:

    def test_order_hash_is_keccak_of_packed(self) -> None:
        order = _make_order()
        assert order_hash(order) == keccak(encode_order(order))

    def test_order_hash_matches_solidity_keccak(self) -> None:
        order = _make_order(salt=2**200 + 3, is_maker_betting_outcome_one=False)
        expected = Web3.solidity_keccak(
            [
                "bytes32", "address", "uint256", "uint256", "uint256",
                "uint256", "address", "address", "bool",
            ],
            [
                order.market_hash,
                order.base_token,
                order.total_bet_size,
                order.percentage_odds,
                order.expiry,
                order.salt,
                order.maker,
                order.executor,
                order.is_maker_betting_outcome_one,
            ],
        )
        assert order_hash(order) == bytes(expected)

    def test_order_digest_mode(self, builder: DigestBuilder) -> None:
        digest = builder.order_digest(_make_order())
        assert digest.mode is SigningMode.PERSONAL_MESSAGE
        assert digest.typed_data is None
        assert len(digest.value) == 32
        assert digest.hex == "0x" + digest.value.hex()

    def test_personal_message_hash_matches_wallet(self) -> None:
        digest = order_hash(_make_order())
        via_hash = Account.unsafe_sign_hash(personal_message_hash(digest), TEST_PRIVATE_KEY)
        via_wallet = Account.sign_message(encode_defunct(primitive=digest), TEST_PRIVATE_KEY)
        assert via_hash.signature == via_wallet.signature

    def test_personal_message_hash_rejects_wrong_width(self) -> None:
        with pytest.raises(ValueError):
            personal_message_hash(b"\x00" * 31)


class TestTypedDigests:

    def test_fill_digest(self, builder: DigestBuilder) -> None:
        digest = builder.fill_digest([_make_order()], [1_000_000], fill_salt=5)
        assert digest.mode is SigningMode.STRUCTURED_DATA
        assert digest.value == keccak(digest.typed_data.encode())
        assert digest.typed_data.domain["chainId"] == CHAIN_ID
        assert digest.typed_data.domain["verifyingContract"] == VERIFIER

    def test_fill_digest_signs_like_wallet(self, builder: DigestBuilder) -> None:
        digest = builder.fill_digest([_make_order()], [1_000_000], fill_salt=5)
        td = digest.typed_data
        signable = encode_typed_data(
            domain_data=td.domain, message_types=td.types, message_data=td.message
        )
        via_wallet = Account.sign_message(signable, TEST_PRIVATE_KEY)
        via_hash = Account.unsafe_sign_hash(digest.value, TEST_PRIVATE_KEY)
        assert via_hash.signature == via_wallet.signature

    def test_cancel_digest(self, builder: DigestBuilder) -> None:
        digest = builder.cancel_digest(["0x" + "01" * 32], b"\x07" * 32, 1_700_000_000)
        assert digest.mode is SigningMode.STRUCTURED_DATA
        assert digest.typed_data.domain["salt"] == b"\x07" * 32
        assert digest.value == keccak(digest.typed_data.encode())

    def test_cancel_digest_depends_on_chain(self) -> None:
        args = (["0x" + "01" * 32], b"\x07" * 32, 1_700_000_000)
        a = DigestBuilder(CHAIN_ID, VERIFIER).cancel_digest(*args)
        b = DigestBuilder(CHAIN_ID + 1, VERIFIER).cancel_digest(*args)
        assert a.value != b.value
