"""SX Bet orders — web3_infra package.

- encoder: packed order bytes and EIP-712 typed data
- digest: personal-message vs typed-data digests
- eip712_signer: Signer interface and the local-key implementation
"""

from .digest import Digest, DigestBuilder, SigningMode, order_hash, personal_message_hash
from .eip712_signer import LocalAccountSigner, Signer
from .encoder import TypedData, cancel_typed_data, encode_order, fill_typed_data

__all__ = [
    "Digest",
    "DigestBuilder",
    "LocalAccountSigner",
    "Signer",
    "SigningMode",
    "TypedData",
    "cancel_typed_data",
    "encode_order",
    "fill_typed_data",
    "order_hash",
    "personal_message_hash",
]
