"""Canonical encoder — the exact bytes hashed for each signed message kind.

Three layouts:

* order creation: tightly packed ``solidityPacked`` concatenation of the
  order fields (221 bytes), hashed to the order hash;
* fill: EIP-712 typed data under the ``SX Bet`` / ``6.0`` domain;
* cancel: EIP-712 typed data under the ``CancelOrderV2SportX`` / ``1.0``
  domain, whose domain carries a per-request salt.

Every field is width-checked before encoding.  Nothing is truncated or
padded to make a malformed value fit; an ``EncodingError`` is raised
instead.  Typed-data values are kept as native Python values (``bytes``
for ``bytes``/``bytesN``, ``int`` for ``uintN``, checksum ``str`` for
addresses), which is what ``eth_account`` and ``eth_abi`` take as-is.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

from eth_abi.packed import encode_packed
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import to_checksum_address

from core.errors import EmptyInputError, EncodingError, InvalidOddsError
from execution.odds_math import ODDS_PRECISION
from models.fill import DETAILS_PLACEHOLDER, DETAILS_PLACEHOLDER_FIELDS, NULL_ADDRESS, NULL_BYTES32
from models.order import OrderRecord

FILL_DOMAIN_NAME = "SX Bet"
FILL_DOMAIN_VERSION = "6.0"
CANCEL_DOMAIN_NAME = "CancelOrderV2SportX"
CANCEL_DOMAIN_VERSION = "1.0"

ORDER_ENCODED_LENGTH = 32 + 20 + 32 + 32 + 32 + 32 + 20 + 20 + 1

# Shared by the packed order encoding and the typed ``Order`` struct.
ORDER_TYPE: list[dict[str, str]] = [
    {"name": "marketHash", "type": "bytes32"},
    {"name": "baseToken", "type": "address"},
    {"name": "totalBetSize", "type": "uint256"},
    {"name": "percentageOdds", "type": "uint256"},
    {"name": "expiry", "type": "uint256"},
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "executor", "type": "address"},
    {"name": "isMakerBettingOutcomeOne", "type": "bool"},
]

FILL_TYPES: dict[str, list[dict[str, str]]] = {
    "Details": [
        *({"name": name, "type": "string"} for name in DETAILS_PLACEHOLDER_FIELDS),
        {"name": "fills", "type": "FillObject"},
    ],
    "FillObject": [
        {"name": "orders", "type": "Order[]"},
        {"name": "makerSigs", "type": "bytes[]"},
        {"name": "takerAmounts", "type": "uint256[]"},
        {"name": "fillSalt", "type": "uint256"},
        {"name": "beneficiary", "type": "address"},
        {"name": "beneficiaryType", "type": "uint8"},
        {"name": "cashOutTarget", "type": "bytes32"},
    ],
    "Order": ORDER_TYPE,
}

CANCEL_TYPES: dict[str, list[dict[str, str]]] = {
    "Details": [
        {"name": "orderHashes", "type": "string[]"},
        {"name": "timestamp", "type": "uint256"},
    ],
}

# EIP-712 fixes the order of domain fields; absent ones are skipped.
_DOMAIN_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
)

_HEX_RE = re.compile(r"(0x|0X)?([0-9a-fA-F]*)")


@dataclass(frozen=True)
class TypedData:
    """An EIP-712 document: ``types`` excludes ``EIP712Domain``."""

    types: dict[str, list[dict[str, str]]]
    primary_type: str
    domain: dict[str, Any]
    message: dict[str, Any]

    @property
    def domain_type(self) -> list[dict[str, str]]:
        return [
            {"name": name, "type": type_}
            for name, type_ in _DOMAIN_FIELDS
            if name in self.domain
        ]

    def signable(self) -> SignableMessage:
        """EIP-191 version ``0x01`` message; header and body are the two hashes."""
        return encode_typed_data(
            domain_data=self.domain,
            message_types=self.types,
            message_data=self.message,
        )

    def domain_separator(self) -> bytes:
        return bytes(self.signable().header)

    def struct_hash(self) -> bytes:
        return bytes(self.signable().body)

    def encode(self) -> bytes:
        """``0x19 0x01 || domainSeparator || hashStruct(message)``."""
        signable = self.signable()
        return b"\x19" + signable.version + signable.header + signable.body

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready document (``bytes`` rendered as 0x-hex) for external wallets."""
        return {
            "types": {"EIP712Domain": self.domain_type, **self.types},
            "primaryType": self.primary_type,
            "domain": _jsonable(self.domain),
            "message": _jsonable(self.message),
        }


# ── Order creation ───────────────────────────────────────────────────


def order_struct(record: OrderRecord) -> dict[str, Any]:
    """Validated ``Order`` struct values for *record*, in canonical order.

    Raises
    ------
    InvalidOddsError
        If ``percentage_odds`` is outside ``(0, 10^20)``.
    EncodingError
        If a hash/address has the wrong width or ``salt`` is missing.
    """
    if not 0 < record.percentage_odds < ODDS_PRECISION:
        raise InvalidOddsError(record.percentage_odds)
    if record.salt is None:
        raise EncodingError("salt", "order has no salt")

    return {
        "marketHash": to_fixed_bytes(record.market_hash, 32, "marketHash"),
        "baseToken": to_address(record.base_token, "baseToken"),
        "totalBetSize": to_uint(record.total_bet_size, 256, "totalBetSize"),
        "percentageOdds": to_uint(record.percentage_odds, 256, "percentageOdds"),
        "expiry": to_uint(record.expiry, 256, "expiry"),
        "salt": to_uint(record.salt, 256, "salt"),
        "maker": to_address(record.maker, "maker"),
        "executor": to_address(record.executor, "executor"),
        "isMakerBettingOutcomeOne": bool(record.is_maker_betting_outcome_one),
    }


def encode_order(record: OrderRecord) -> bytes:
    """Tightly packed order-creation bytes (221 bytes, no padding)."""
    struct = order_struct(record)
    return encode_packed(
        [field["type"] for field in ORDER_TYPE],
        [struct[field["name"]] for field in ORDER_TYPE],
    )


# ── Fill typed data ──────────────────────────────────────────────────


def fill_typed_data(
    orders: Sequence[OrderRecord],
    taker_amounts: Sequence[int],
    fill_salt: int,
    chain_id: int,
    verifying_contract: str,
    beneficiary: str = NULL_ADDRESS,
    beneficiary_type: int = 0,
    cash_out_target: str | bytes = NULL_BYTES32,
) -> TypedData:
    """Typed-data document a taker signs to fill *orders*.

    Each order must carry the maker signature; ``taker_amounts`` runs
    parallel to ``orders``.
    """
    if not orders:
        raise EmptyInputError("fill requires at least one order")
    if len(orders) != len(taker_amounts):
        raise EncodingError(
            "takerAmounts",
            f"{len(taker_amounts)} amounts for {len(orders)} orders",
        )

    maker_sigs = []
    for index, order in enumerate(orders):
        if not order.signature:
            raise EncodingError(f"orders[{index}].signature", "order is not signed")
        maker_sigs.append(to_dynamic_bytes(order.signature, f"makerSigs[{index}]"))

    fills = {
        "orders": [order_struct(order) for order in orders],
        "makerSigs": maker_sigs,
        "takerAmounts": [
            to_uint(amount, 256, f"takerAmounts[{index}]")
            for index, amount in enumerate(taker_amounts)
        ],
        "fillSalt": to_uint(fill_salt, 256, "fillSalt"),
        "beneficiary": to_address(beneficiary, "beneficiary"),
        "beneficiaryType": to_uint(beneficiary_type, 8, "beneficiaryType"),
        "cashOutTarget": to_fixed_bytes(cash_out_target, 32, "cashOutTarget"),
    }
    message: dict[str, Any] = {name: DETAILS_PLACEHOLDER for name in DETAILS_PLACEHOLDER_FIELDS}
    message["fills"] = fills

    domain = {
        "name": FILL_DOMAIN_NAME,
        "version": FILL_DOMAIN_VERSION,
        "chainId": to_uint(chain_id, 256, "chainId"),
        "verifyingContract": to_address(verifying_contract, "verifyingContract"),
    }
    return TypedData(types=FILL_TYPES, primary_type="Details", domain=domain, message=message)


# ── Cancel typed data ────────────────────────────────────────────────


def cancel_typed_data(
    order_hashes: Sequence[str],
    salt: str | bytes,
    timestamp: int,
    chain_id: int,
) -> TypedData:
    """Typed-data document a maker signs to cancel *order_hashes*.

    Hashes are signed as ``string[]``: each must be a 32-byte hex string
    and is kept verbatim, since its exact text is what gets hashed.
    """
    if not order_hashes:
        raise EmptyInputError("cancellation requires at least one order hash")
    for index, order_hash in enumerate(order_hashes):
        if not isinstance(order_hash, str):
            raise EncodingError(f"orderHashes[{index}]", "must be a hex string")
        to_fixed_bytes(order_hash, 32, f"orderHashes[{index}]")

    domain = {
        "name": CANCEL_DOMAIN_NAME,
        "version": CANCEL_DOMAIN_VERSION,
        "chainId": to_uint(chain_id, 256, "chainId"),
        "salt": to_fixed_bytes(salt, 32, "salt"),
    }
    message = {
        "orderHashes": list(order_hashes),
        "timestamp": to_uint(timestamp, 256, "timestamp"),
    }
    return TypedData(types=CANCEL_TYPES, primary_type="Details", domain=domain, message=message)



# ── Field coercion ───────────────────────────────────────────────────


def to_fixed_bytes(value: str | bytes, width: int, field: str) -> bytes:
    """Exactly *width* bytes from raw bytes or a 0x-hex string."""
    raw = to_dynamic_bytes(value, field)
    if len(raw) != width:
        raise EncodingError(field, f"expected {width} bytes, got {len(raw)}")
    return raw


def to_dynamic_bytes(value: str | bytes, field: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise EncodingError(field, f"expected hex string or bytes, got {type(value).__name__}")
    match = _HEX_RE.fullmatch(value)
    if match is None or len(match.group(2)) % 2:
        raise EncodingError(field, f"not a valid hex string: {value!r}")
    return bytes.fromhex(match.group(2))


def to_address(value: str | bytes, field: str) -> str:
    """Checksummed address after checking it is exactly 20 bytes."""
    return to_checksum_address(to_fixed_bytes(value, 20, field))


def to_uint(value: int, bits: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(field, f"expected int, got {type(value).__name__}")
    if not 0 <= value < 2**bits:
        raise EncodingError(field, f"{value} does not fit in uint{bits}")
    return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
