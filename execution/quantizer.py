"""Quantizer — odds-ladder and unit helpers for maker orders.

Percent inputs and stakes use ``Decimal`` exclusively; floats are never
accepted.  Raw odds and base units are plain ``int``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from execution.odds_math import DEFAULT_DECIMALS, ODDS_PRECISION

# Raw odds per whole percent (10^20 / 100).
_PERCENT_SCALE_DECIMALS = 18
# Raw odds per hundredth of a percent: ladder steps are expressed in these.
_STEP_UNIT = 10**16

DEFAULT_LADDER_STEP_SIZE = 25


def percent_to_percentage_odds(percent: Decimal | str) -> int:
    """Convert a human percent (``Decimal("50.25")``) to raw percentage odds.

    Raises
    ------
    ValueError
        If *percent* has more than 18 fractional digits or lies outside
        ``(0, 100)``.
    TypeError
        If *percent* is a float.
    """
    raw = _scale_exact(percent, _PERCENT_SCALE_DECIMALS, "percent")
    if not 0 < raw < ODDS_PRECISION:
        raise ValueError(f"percent must be in (0, 100), got {percent}")
    return raw


def odds_ladder_step(step_size: int = DEFAULT_LADDER_STEP_SIZE) -> int:
    """Ladder step in raw odds; *step_size* is in hundredths of a percent."""
    if isinstance(step_size, bool) or not isinstance(step_size, int):
        raise TypeError(f"step_size must be an int, got {type(step_size).__name__}")
    if step_size <= 0:
        raise ValueError(f"step_size must be positive, got {step_size}")
    return step_size * _STEP_UNIT


def is_on_odds_ladder(percentage_odds: int, step_size: int = DEFAULT_LADDER_STEP_SIZE) -> bool:
    """True if *percentage_odds* is an exact multiple of the ladder step."""
    return percentage_odds % odds_ladder_step(step_size) == 0


def round_down_to_ladder(percentage_odds: int, step_size: int = DEFAULT_LADDER_STEP_SIZE) -> int:
    """Round *percentage_odds* down to the ladder.

    Raises
    ------
    ValueError
        If the result would be zero, i.e. the odds are below one step.
    """
    step = odds_ladder_step(step_size)
    rounded = percentage_odds // step * step
    if rounded <= 0:
        raise ValueError(
            f"percentage_odds {percentage_odds} is below the ladder step {step}"
        )
    return rounded


def to_base_units(amount: Decimal | str, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a nominal token amount to integer base units.

    ``to_base_units(Decimal("1.5"))`` -> ``1500000`` for a 6-decimal token.

    Raises
    ------
    ValueError
        If *amount* is negative or carries more than *decimals* digits.
    TypeError
        If *amount* is a float.
    """
    base_units = _scale_exact(amount, decimals, "amount")
    if base_units < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    return base_units


# ── Internal helpers ─────────────────────────────────────────────────


def _scale_exact(value: Decimal | str, decimals: int, name: str) -> int:
    if isinstance(value, float):
        raise TypeError(f"{name} must be a Decimal or str, got float")
    if not isinstance(value, (Decimal, str)):
        raise TypeError(f"{name} must be a Decimal or str, got {type(value).__name__}")
    try:
        dec = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"{name} is not a number: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"{name} must be finite, got {value}")

    sign, digits, exponent = dec.as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    shift = exponent + decimals
    if shift >= 0:
        scaled = coefficient * 10**shift
    else:
        scaled, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise ValueError(f"{name} {value} has more than {decimals} decimal places")
    return -scaled if sign else scaled
