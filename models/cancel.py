"""CancelRequest — cancelamento assinado de uma ou mais ordens."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CancelRequest(BaseModel):
    """Pedido de cancelamento de uso único.

    O ``salt`` pertence ao domínio EIP-712, não à mensagem.
    """

    model_config = ConfigDict(frozen=True)

    order_hashes: list[str] = Field(..., min_length=1, description="Ordens a cancelar, em ordem")
    salt: str = Field(..., min_length=1, description="Salt do domínio (bytes32 hex)")
    timestamp: int = Field(..., ge=0, description="Relógio no momento da assinatura (s)")
    maker: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)

    def to_api_dict(self) -> dict[str, Any]:
        """Payload de ``POST /orders/cancel/v2``."""
        return {
            "orderHashes": list(self.order_hashes),
            "signature": self.signature,
            "salt": self.salt,
            "maker": self.maker,
            "timestamp": self.timestamp,
        }
