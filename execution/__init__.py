"""SX Bet orders — execution package.

``SigningCoordinator`` lives in ``execution.signing_coordinator`` and is
not re-exported here: it depends on ``models``, which itself imports
``execution.odds_math``.
"""

from .odds_math import (
    decimal_odds,
    fill_amount,
    implied_probability,
    potential_payout,
    remaining_liquidity,
    remaining_liquidity_base_units,
    to_nominal_units,
)
from .quantizer import (
    is_on_odds_ladder,
    odds_ladder_step,
    percent_to_percentage_odds,
    round_down_to_ladder,
    to_base_units,
)

__all__ = [
    "decimal_odds",
    "fill_amount",
    "implied_probability",
    "is_on_odds_ladder",
    "odds_ladder_step",
    "percent_to_percentage_odds",
    "potential_payout",
    "remaining_liquidity",
    "remaining_liquidity_base_units",
    "round_down_to_ladder",
    "to_base_units",
    "to_nominal_units",
]
