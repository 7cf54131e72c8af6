"""DigestBuilder — the 32-byte digests handed to a signer.

Two schemes, kept as separate code paths because the verifier derives
each one differently:

* order creation: ``keccak(packed order)`` signed as a *personal message*
  (the signer prefixes ``"\\x19Ethereum Signed Message:\\n32"``);
* fill and cancel: the EIP-712 typed-data digest, signed as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from eth_account.messages import _hash_eip191_message, encode_defunct
from eth_utils import keccak

from models.fill import NULL_ADDRESS, NULL_BYTES32
from models.order import OrderRecord

from .encoder import TypedData, cancel_typed_data, encode_order, fill_typed_data


class SigningMode(str, Enum):
    """How a signer must treat the digest it receives."""

    PERSONAL_MESSAGE = "personal_message"
    STRUCTURED_DATA = "structured_data"


@dataclass(frozen=True)
class Digest:
    """A digest plus the scheme it must be signed under."""

    value: bytes
    mode: SigningMode
    typed_data: Optional[TypedData] = None

    @property
    def hex(self) -> str:
        return "0x" + self.value.hex()


def order_hash(record: OrderRecord) -> bytes:
    """Keccak-256 of the packed order-creation encoding."""
    return keccak(encode_order(record))


def personal_message_hash(digest: bytes) -> bytes:
    """Hash a wallet actually signs for a personal-message over *digest*."""
    if len(digest) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
    return bytes(_hash_eip191_message(encode_defunct(primitive=digest)))


def typed_data_digest(typed_data: TypedData) -> Digest:
    return Digest(
        value=bytes(_hash_eip191_message(typed_data.signable())),
        mode=SigningMode.STRUCTURED_DATA,
        typed_data=typed_data,
    )


class DigestBuilder:
    """Builds signable digests for one chain and fill verifier.

    Parameters
    ----------
    chain_id:
        EIP-712 ``chainId`` for fill and cancel domains.
    fill_verifying_contract:
        ``verifyingContract`` of the fill domain (the EIP-712 fill hasher).
    """

    def __init__(self, chain_id: int, fill_verifying_contract: str) -> None:
        self._chain_id = chain_id
        self._fill_verifying_contract = fill_verifying_contract

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def order_digest(self, record: OrderRecord) -> Digest:
        return Digest(value=order_hash(record), mode=SigningMode.PERSONAL_MESSAGE)

    def fill_digest(
        self,
        orders: Sequence[OrderRecord],
        taker_amounts: Sequence[int],
        fill_salt: int,
        beneficiary: str = NULL_ADDRESS,
        beneficiary_type: int = 0,
        cash_out_target: str | bytes = NULL_BYTES32,
    ) -> Digest:
        return typed_data_digest(fill_typed_data(
            orders,
            taker_amounts,
            fill_salt,
            chain_id=self._chain_id,
            verifying_contract=self._fill_verifying_contract,
            beneficiary=beneficiary,
            beneficiary_type=beneficiary_type,
            cash_out_target=cash_out_target,
        ))

    def cancel_digest(
        self,
        order_hashes: Sequence[str],
        salt: str | bytes,
        timestamp: int,
    ) -> Digest:
        return typed_data_digest(
            cancel_typed_data(order_hashes, salt, timestamp, chain_id=self._chain_id)
        )
