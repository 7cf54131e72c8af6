"""FillRequest — preenchimento assinado pelo taker."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

NULL_ADDRESS = "0x" + "00" * 20
NULL_BYTES32 = "0x" + "00" * 32

# Campos legados do esquema "Details"; o verificador espera literalmente "N/A".
DETAILS_PLACEHOLDER = "N/A"
DETAILS_PLACEHOLDER_FIELDS = ("action", "market", "betting", "stake", "odds", "returning")


class FillRequest(BaseModel):
    """Pedido de fill de uso único, pronto para ``POST /orders/fill``."""

    model_config = ConfigDict(frozen=True)

    order_hashes: list[str] = Field(..., min_length=1, description="Ordens alvo")
    taker_amounts: list[int] = Field(..., min_length=1, description="Quantidades por ordem")
    fill_salt: int = Field(..., ge=0, description="Salt aleatório de 256 bits")
    taker: str = Field(..., min_length=1)
    beneficiary: str = Field(default=NULL_ADDRESS)
    beneficiary_type: int = Field(default=0, ge=0, le=255)
    cash_out_target: str = Field(default=NULL_BYTES32)
    signature: str = Field(..., min_length=1, description="Assinatura EIP-712 do taker")

    @model_validator(mode="after")
    def parallel_arrays(self) -> FillRequest:
        """order_hashes e taker_amounts devem ter o mesmo tamanho."""
        if len(self.order_hashes) != len(self.taker_amounts):
            raise ValueError("order_hashes and taker_amounts must have the same length")
        if any(amount < 0 for amount in self.taker_amounts):
            raise ValueError("taker_amounts must be non-negative")
        return self

    def to_api_dict(self) -> dict[str, Any]:
        """Payload da API; quantidades e salt como strings decimais."""
        payload: dict[str, Any] = {
            "orderHashes": list(self.order_hashes),
            "takerAmounts": [str(amount) for amount in self.taker_amounts],
            "taker": self.taker,
            "takerSig": self.signature,
            "fillSalt": str(self.fill_salt),
        }
        for name in DETAILS_PLACEHOLDER_FIELDS:
            payload[name] = DETAILS_PLACEHOLDER
        return payload
