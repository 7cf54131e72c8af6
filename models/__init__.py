"""SX Bet orders — models package."""

from .cancel import CancelRequest
from .fill import NULL_ADDRESS, NULL_BYTES32, FillRequest
from .order import ORDER_EXPIRY_SENTINEL, OrderRecord

__all__ = [
    "CancelRequest",
    "FillRequest",
    "NULL_ADDRESS",
    "NULL_BYTES32",
    "ORDER_EXPIRY_SENTINEL",
    "OrderRecord",
]
