"""Error kinds raised by the order-protocol engine.

Arithmetic and encoding errors are raised before any signer is invoked.
Every kind except ``SignerUnavailableError`` is also a ``ValueError`` so
callers validating user input can catch them generically.
"""

from __future__ import annotations


class OrderProtocolError(Exception):
    """Base class for all engine errors."""


class InvalidOddsError(OrderProtocolError, ValueError):
    """Percentage odds outside the range a formula or encoding requires."""

    def __init__(self, percentage_odds: int, message: str | None = None) -> None:
        super().__init__(message or f"invalid percentage odds: {percentage_odds}")
        self.percentage_odds = percentage_odds


class InvalidStateError(OrderProtocolError, ValueError):
    """Amounts that cannot coexist, e.g. a fill larger than the order."""


class EmptyInputError(OrderProtocolError, ValueError):
    """A request that needs at least one element received none."""


class EncodingError(OrderProtocolError, ValueError):
    """Malformed field for the wire encoding (wrong width, bad hex, overflow)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class SignerUnavailableError(OrderProtocolError, RuntimeError):
    """No signer configured, or the signer call failed or timed out.

    The underlying exception, when any, is chained as ``__cause__``.
    """
