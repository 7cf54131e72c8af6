"""SigningCoordinator — build record, digest, sign, assemble payload.

Three independent single-shot flows (order creation, fill, cancel).  All
validation runs before the signer is awaited; the signer call is the only
suspension point and is bounded only by the caller's ``timeout``.  Nothing
here retries: retry policy belongs to the transport layer.
"""

from __future__ import annotations

import asyncio
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Sequence

import structlog

from config.settings import Settings
from core.errors import (
    EmptyInputError,
    EncodingError,
    InvalidOddsError,
    InvalidStateError,
    SignerUnavailableError,
)
from execution import odds_math
from execution.quantizer import is_on_odds_ladder, round_down_to_ladder, to_base_units
from models.cancel import CancelRequest
from models.fill import FillRequest
from models.order import ORDER_EXPIRY_SENTINEL, OrderRecord
from web3_infra.digest import Digest, DigestBuilder
from web3_infra.eip712_signer import Signer
from web3_infra.encoder import to_fixed_bytes

logger = structlog.get_logger("execution.signing_coordinator")


def random_salt() -> int:
    """256 bits from the OS CSPRNG."""
    return secrets.randbits(256)


def random_bytes32() -> bytes:
    return secrets.token_bytes(32)


@dataclass(frozen=True)
class SignedOrder:
    """Result of signing an order: the signed record and its hash."""

    order: OrderRecord
    order_hash: str
    signature: str

    def to_api_dict(self) -> dict[str, Any]:
        """Payload for ``POST /orders/new``."""
        return {"orders": [self.order.to_api_dict()]}


class SigningCoordinator:
    """Orchestrates the three signing flows against a ``Signer``.

    Parameters
    ----------
    signer:
        Signing capability.  ``None`` is accepted so a coordinator can be
        built for dry runs; every signing call then raises
        ``SignerUnavailableError``.
    chain_id:
        EIP-712 chain id for fills and cancellations.
    fill_verifying_contract:
        ``verifyingContract`` of the fill domain.
    api_expiry_seconds:
        Lifetime added to the clock for ``apiExpiry`` of new orders.
    base_token_decimals:
        Decimals of the settlement token, used by ``build_order``.
    odds_ladder_step_size:
        Ladder step in hundredths of a percent; maker odds off the ladder
        are rounded down by ``build_order``.  ``None`` disables the ladder.
    base_token, executor:
        Addresses ``build_order`` uses when the caller passes none.
    default_timeout:
        Signer timeout in seconds for calls that pass no ``timeout``.
        ``None`` waits indefinitely.
    salt_source, domain_salt_source, clock:
        Injectable randomness and wall clock.
    """

    def __init__(
        self,
        signer: Optional[Signer],
        chain_id: int,
        fill_verifying_contract: str,
        api_expiry_seconds: int = 3600,
        base_token_decimals: int = odds_math.DEFAULT_DECIMALS,
        order_expiry: int = ORDER_EXPIRY_SENTINEL,
        odds_ladder_step_size: Optional[int] = None,
        base_token: Optional[str] = None,
        executor: Optional[str] = None,
        default_timeout: Optional[float] = None,
        salt_source: Callable[[], int] = random_salt,
        domain_salt_source: Callable[[], bytes] = random_bytes32,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer = signer
        self._digests = DigestBuilder(chain_id, fill_verifying_contract)
        self._api_expiry_seconds = api_expiry_seconds
        self._base_token_decimals = base_token_decimals
        self._order_expiry = order_expiry
        self._odds_ladder_step_size = odds_ladder_step_size
        self._base_token = base_token
        self._executor = executor
        self._default_timeout = default_timeout
        self._salt_source = salt_source
        self._domain_salt_source = domain_salt_source
        self._clock = clock

    @classmethod
    def from_settings(cls, signer: Optional[Signer], cfg: Settings) -> SigningCoordinator:
        return cls(
            signer,
            chain_id=cfg.CHAIN_ID,
            fill_verifying_contract=cfg.EIP712_FILL_HASHER,
            api_expiry_seconds=cfg.API_EXPIRY_SECONDS,
            base_token_decimals=cfg.BASE_TOKEN_DECIMALS,
            order_expiry=cfg.ORDER_EXPIRY_SENTINEL,
            odds_ladder_step_size=cfg.ODDS_LADDER_STEP_SIZE,
            base_token=cfg.BASE_TOKEN_ADDRESS,
            executor=cfg.EXECUTOR_ADDRESS,
            default_timeout=cfg.SIGNER_TIMEOUT_SECONDS,
        )

    @property
    def digests(self) -> DigestBuilder:
        return self._digests

    # ── Order creation ───────────────────────────────────────────

    def build_order(
        self,
        *,
        market_hash: str,
        maker: str,
        stake: Decimal | str,
        percentage_odds: int,
        is_maker_betting_outcome_one: bool,
        base_token: Optional[str] = None,
        executor: Optional[str] = None,
    ) -> OrderRecord:
        """Fresh unsigned order with protocol defaults filled in.

        *stake* is in nominal token units (``Decimal("10")`` = 10 USDC).
        *base_token* and *executor* fall back to the coordinator's.
        """
        base_token = base_token or self._base_token
        executor = executor or self._executor
        if not base_token:
            raise EncodingError("baseToken", "no base token given or configured")
        if not executor:
            raise EncodingError("executor", "no executor given or configured")
        total_bet_size = to_base_units(stake, self._base_token_decimals)
        if total_bet_size <= 0:
            raise InvalidStateError(f"stake must be positive, got {stake}")
        if not 0 < percentage_odds < odds_math.ODDS_PRECISION:
            raise InvalidOddsError(percentage_odds)

        step = self._odds_ladder_step_size
        if step is not None and not is_on_odds_ladder(percentage_odds, step):
            rounded = round_down_to_ladder(percentage_odds, step)
            logger.info(
                "signing_coordinator.odds_rounded",
                requested=str(percentage_odds),
                rounded=str(rounded),
            )
            percentage_odds = rounded

        return OrderRecord(
            market_hash=market_hash,
            maker=maker,
            base_token=base_token,
            executor=executor,
            total_bet_size=total_bet_size,
            percentage_odds=percentage_odds,
            expiry=self._order_expiry,
            api_expiry=self._now() + self._api_expiry_seconds,
            salt=self._salt_source(),
            is_maker_betting_outcome_one=is_maker_betting_outcome_one,
        )

    async def sign_order_creation(
        self,
        record: OrderRecord,
        timeout: Optional[float] = None,
    ) -> SignedOrder:
        """Sign *record* as a personal message over its order hash.

        Generates ``salt`` and ``apiExpiry`` when the record lacks them.
        """
        updates: dict[str, Any] = {}
        if record.salt is None:
            updates["salt"] = self._salt_source()
        if record.api_expiry is None:
            updates["api_expiry"] = self._now() + self._api_expiry_seconds
        if updates:
            record = record.model_copy(update=updates)

        digest = self._digests.order_digest(record)
        signer = self._require_signer()
        if signer.address.lower() != record.maker.lower():
            logger.warning(
                "signing_coordinator.maker_mismatch",
                maker=record.maker,
                signer=signer.address,
            )

        signature = _hex(await self._invoke_signer(digest, timeout))
        signed = record.model_copy(update={"signature": signature, "order_hash": digest.hex})

        logger.info(
            "signing_coordinator.order_signed",
            order_hash=digest.hex,
            market_hash=record.market_hash,
            total_bet_size=str(record.total_bet_size),
            percentage_odds=str(record.percentage_odds),
        )
        return SignedOrder(order=signed, order_hash=digest.hex, signature=signature)

    # ── Fill ─────────────────────────────────────────────────────

    async def sign_fill(
        self,
        order: OrderRecord,
        taker_bet_amount: int,
        timeout: Optional[float] = None,
    ) -> FillRequest:
        """Sign a fill of one *order* for a taker stake in base units."""
        return await self.sign_fills([(order, taker_bet_amount)], timeout=timeout)

    async def sign_fills(
        self,
        targets: Iterable[tuple[OrderRecord, int]],
        timeout: Optional[float] = None,
    ) -> FillRequest:
        """Sign one fill across several orders.

        Each target is ``(order, taker_bet_amount)``; the signed taker
        amount is the matching maker fill amount, floored.  Liquidity is not
        checked here: callers size the stake against a live snapshot.

        Raises
        ------
        EmptyInputError
            If *targets* is empty.
        InvalidOddsError
            If an order's odds sit on the 0%/100% boundary.
        InvalidStateError
            If an order carries an ``orderHash`` that does not match its
            fields.
        """
        targets = list(targets)
        if not targets:
            raise EmptyInputError("fill requires at least one target order")

        orders: list[OrderRecord] = []
        taker_amounts: list[int] = []
        order_hashes: list[str] = []
        for order, taker_bet_amount in targets:
            taker_amounts.append(odds_math.fill_amount(taker_bet_amount, order.percentage_odds))
            order_hashes.append(self._verified_order_hash(order))
            orders.append(order)

        fill_salt = self._salt_source()
        digest = self._digests.fill_digest(orders, taker_amounts, fill_salt)
        signature = _hex(await self._invoke_signer(digest, timeout))

        request = FillRequest(
            order_hashes=order_hashes,
            taker_amounts=taker_amounts,
            fill_salt=fill_salt,
            taker=self._require_signer().address,
            signature=signature,
        )
        logger.info(
            "signing_coordinator.fill_signed",
            order_hashes=order_hashes,
            taker_amounts=[str(amount) for amount in taker_amounts],
        )
        return request

    def _verified_order_hash(self, order: OrderRecord) -> str:
        computed = self._digests.order_digest(order).hex
        if order.order_hash is not None:
            claimed = to_fixed_bytes(order.order_hash, 32, "orderHash")
            if "0x" + claimed.hex() != computed:
                raise InvalidStateError(
                    f"orderHash {order.order_hash} does not match order fields ({computed})"
                )
        return computed

    # ── Cancel ───────────────────────────────────────────────────

    async def sign_cancellation(
        self,
        order_hashes: Sequence[str],
        timeout: Optional[float] = None,
    ) -> CancelRequest:
        """Sign a cancellation of *order_hashes* with a fresh domain salt.

        Raises
        ------
        EmptyInputError
            If *order_hashes* is empty.
        """
        order_hashes = list(order_hashes)
        if not order_hashes:
            raise EmptyInputError("cancellation requires at least one order hash")

        salt = self._domain_salt_source()
        timestamp = self._now()
        digest = self._digests.cancel_digest(order_hashes, salt, timestamp)
        signature = _hex(await self._invoke_signer(digest, timeout))

        request = CancelRequest(
            order_hashes=order_hashes,
            salt=_hex(salt),
            timestamp=timestamp,
            maker=self._require_signer().address,
            signature=signature,
        )
        logger.info(
            "signing_coordinator.cancel_signed",
            order_count=len(order_hashes),
            timestamp=timestamp,
        )
        return request

    # ── Internal ─────────────────────────────────────────────────

    def _now(self) -> int:
        return int(self._clock())

    def _require_signer(self) -> Signer:
        if self._signer is None:
            raise SignerUnavailableError("no signer configured")
        return self._signer

    async def _invoke_signer(self, digest: Digest, timeout: Optional[float]) -> bytes:
        signer = self._require_signer()
        if timeout is None:
            timeout = self._default_timeout
        try:
            if timeout is None:
                signature = await signer.sign(digest.value, digest.mode)
            else:
                signature = await asyncio.wait_for(signer.sign(digest.value, digest.mode), timeout)
        except SignerUnavailableError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning(
                "signing_coordinator.signer_timeout",
                digest=digest.hex,
                timeout_s=timeout,
            )
            if timeout is None:
                message = "signer raised a timeout"
            else:
                message = f"signer timed out after {timeout}s"
            raise SignerUnavailableError(message) from exc
        except Exception as exc:
            logger.error(
                "signing_coordinator.signer_failed",
                digest=digest.hex,
                error=str(exc),
            )
            raise SignerUnavailableError(f"signer failed: {exc}") from exc

        if not isinstance(signature, (bytes, bytearray)) or not signature:
            raise SignerUnavailableError("signer returned an empty signature")
        return bytes(signature)


def _hex(value: bytes) -> str:
    return "0x" + value.hex()
