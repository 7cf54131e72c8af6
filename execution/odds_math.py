"""Fixed-point odds math — percentage odds scaled by 10^20.

Every computation runs on Python ``int``.  Values meant for display are
rendered as ``Decimal`` with two places, rounding half away from zero on
the final division only.  Floats are never accepted.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from core.errors import InvalidOddsError, InvalidStateError

ODDS_PRECISION = 10**20
DEFAULT_DECIMALS = 6
DISPLAY_PLACES = 2


def decimal_odds(percentage_odds: int) -> Optional[Decimal]:
    """Taker decimal odds ``10^20 / (10^20 - percentage_odds)``.

    Returns ``None`` ("not applicable") when the implied taker probability
    is not positive, i.e. ``percentage_odds >= 10^20``.

    Raises
    ------
    InvalidOddsError
        If *percentage_odds* is negative.
    """
    _validate_int(percentage_odds, "percentage_odds")
    if percentage_odds < 0:
        raise InvalidOddsError(percentage_odds)

    denominator = ODDS_PRECISION - percentage_odds
    if denominator <= 0:
        return None
    return _render_ratio(ODDS_PRECISION, denominator)


def implied_probability(percentage_odds: int) -> Decimal:
    """Maker implied probability as a percentage (``5 * 10^19`` -> ``50.00``)."""
    _validate_int(percentage_odds, "percentage_odds")
    if not 0 <= percentage_odds <= ODDS_PRECISION:
        raise InvalidOddsError(percentage_odds)
    return _render_ratio(percentage_odds * 100, ODDS_PRECISION)


def remaining_liquidity_base_units(
    total_bet_size: int,
    fill_amount: int,
    percentage_odds: int,
) -> int:
    """Counter-stake still available to takers, in base units.

    ``remaining_stake * 10^20 // percentage_odds - remaining_stake`` with
    ``remaining_stake = total_bet_size - fill_amount``.
    """
    _validate_amount(total_bet_size, "total_bet_size")
    _validate_amount(fill_amount, "fill_amount")
    _validate_int(percentage_odds, "percentage_odds")
    # 10^20 is allowed: a certain maker leaves no counter-stake
    if not 0 < percentage_odds <= ODDS_PRECISION:
        raise InvalidOddsError(
            percentage_odds,
            f"percentage_odds must be in (0, 10^20], got {percentage_odds}",
        )

    remaining_stake = total_bet_size - fill_amount
    if remaining_stake < 0:
        raise InvalidStateError(
            f"fill_amount {fill_amount} exceeds total_bet_size {total_bet_size}"
        )
    return remaining_stake * ODDS_PRECISION // percentage_odds - remaining_stake


def remaining_liquidity(
    total_bet_size: int,
    fill_amount: int,
    percentage_odds: int,
    decimals: int = DEFAULT_DECIMALS,
) -> Decimal:
    """Remaining taker space in nominal units, two places.

    >>> remaining_liquidity(1_000_000, 0, 5 * 10**19)
    Decimal('1.00')
    """
    remaining = remaining_liquidity_base_units(total_bet_size, fill_amount, percentage_odds)
    return to_nominal_units(remaining, decimals)


def fill_amount(taker_bet_amount: int, percentage_odds: int) -> int:
    """Maker stake matched by a taker bet, floored so we never over-commit.

    ``taker_bet_amount * percentage_odds // (10^20 - percentage_odds)``
    """
    _validate_amount(taker_bet_amount, "taker_bet_amount")
    _validate_odds(percentage_odds)
    return taker_bet_amount * percentage_odds // (ODDS_PRECISION - percentage_odds)


def potential_payout(bet_amount: int, percentage_odds: int) -> int:
    """Taker payout (stake included), floored.

    ``bet_amount * 10^20 // (10^20 - percentage_odds)``
    """
    _validate_amount(bet_amount, "bet_amount")
    _validate_odds(percentage_odds)
    return bet_amount * ODDS_PRECISION // (ODDS_PRECISION - percentage_odds)


def to_nominal_units(base_units_amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert base units to display units rendered with two places."""
    _validate_int(base_units_amount, "base_units_amount")
    _validate_int(decimals, "decimals")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return _render_ratio(base_units_amount, 10**decimals)


# ── Internal helpers ─────────────────────────────────────────────────


def _render_ratio(numerator: int, denominator: int, places: int = DISPLAY_PLACES) -> Decimal:
    """``numerator / denominator`` to *places* digits, half away from zero."""
    negative = (numerator < 0) != (denominator < 0)
    quotient, remainder = divmod(abs(numerator) * 10**places, abs(denominator))
    if 2 * remainder >= abs(denominator):
        quotient += 1
    if negative:
        quotient = -quotient
    # string construction is exact, unaffected by context precision
    return Decimal(f"{quotient}E-{places}")


def _validate_int(value: int, name: str) -> None:
    # bool is an int subclass but never a meaningful amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")


def _validate_amount(value: int, name: str) -> None:
    _validate_int(value, name)
    if value < 0:
        raise InvalidStateError(f"{name} must be non-negative, got {value}")


def _validate_odds(percentage_odds: int) -> None:
    _validate_int(percentage_odds, "percentage_odds")
    if not 0 < percentage_odds < ODDS_PRECISION:
        raise InvalidOddsError(
            percentage_odds,
            f"percentage_odds must be in (0, 10^20), got {percentage_odds}",
        )
