"""OrderRecord — campos assináveis de uma ordem maker no SX Bet."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.errors import InvalidStateError
from execution import odds_math

# Expiry on-chain depreciado, mas ainda parte do hash da ordem.
ORDER_EXPIRY_SENTINEL = 2209006800


class OrderRecord(BaseModel):
    """Ordem em repouso no livro, como assinada pelo maker.

    Endereços e hashes ficam como strings hex; a largura de cada campo é
    validada pelo encoder antes de qualquer hash.  O modelo é imutável:
    assinar devolve uma cópia com ``signature`` preenchida.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    market_hash: str = Field(..., min_length=1, description="Hash do mercado (bytes32)")
    maker: str = Field(..., min_length=1, description="Endereço do maker")
    base_token: str = Field(..., min_length=1, description="Token de liquidação")
    executor: str = Field(..., min_length=1, description="Endereço do executor")

    total_bet_size: int = Field(..., ge=0, description="Stake total em unidades base")
    percentage_odds: int = Field(..., ge=0, description="Odds do maker escaladas por 10^20")
    expiry: int = Field(default=ORDER_EXPIRY_SENTINEL, ge=0, description="Sentinela depreciado")
    api_expiry: Optional[int] = Field(default=None, ge=0, description="Expiry efetivo (segundos)")
    salt: Optional[int] = Field(default=None, ge=0, description="Salt aleatório de 256 bits")
    is_maker_betting_outcome_one: bool

    fill_amount: int = Field(default=0, ge=0, description="Quantidade já preenchida")
    signature: Optional[str] = Field(default=None, description="Assinatura do maker (hex)")
    order_hash: Optional[str] = Field(default=None, description="Hash da ordem (hex)")

    def __init__(self, **data: Any) -> None:
        super().__init__(**data)
        self._check_fill()

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> OrderRecord:
        """Constrói a partir de um item de ``GET /orders`` (chaves camelCase).

        Raises
        ------
        pydantic.ValidationError
            Campo ausente ou com tipo inválido.
        InvalidStateError
            ``fillAmount`` maior que ``totalBetSize``.
        """
        record = cls.model_validate(payload)
        record._check_fill()
        return record

    def _check_fill(self) -> None:
        if self.fill_amount > self.total_bet_size:
            raise InvalidStateError(
                f"fill_amount {self.fill_amount} exceeds total_bet_size {self.total_bet_size}"
            )

    # ── Valores derivados ───────────────────────────────────────

    @property
    def decimal_odds(self) -> Optional[Decimal]:
        """Odds decimais do lado taker; ``None`` quando não aplicável."""
        return odds_math.decimal_odds(self.percentage_odds)

    @property
    def remaining_liquidity(self) -> Decimal:
        """Espaço restante para takers, em unidades nominais (6 decimais)."""
        return odds_math.remaining_liquidity(
            self.total_bet_size, self.fill_amount, self.percentage_odds
        )

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    # ── Serialização ────────────────────────────────────────────

    def to_api_dict(self) -> dict[str, Any]:
        """Formato aceito por ``POST /orders/new``.

        Inteiros de 256 bits viajam como strings decimais.
        """
        if self.signature is None:
            raise ValueError("order must be signed before submission")
        if self.salt is None or self.api_expiry is None:
            raise ValueError("order is missing salt or apiExpiry")
        return {
            "marketHash": self.market_hash,
            "maker": self.maker,
            "totalBetSize": str(self.total_bet_size),
            "percentageOdds": str(self.percentage_odds),
            "baseToken": self.base_token,
            "apiExpiry": self.api_expiry,
            "expiry": self.expiry,
            "executor": self.executor,
            "isMakerBettingOutcomeOne": self.is_maker_betting_outcome_one,
            "salt": str(self.salt),
            "signature": self.signature,
        }
