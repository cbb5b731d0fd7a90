"""Errors raised by the position ledger.

Every error is raised before any state mutation, so a caller that catches
one can assume the ledger is exactly as it was before the call.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    """Base exception for rejected ledger operations.

    Attributes:
        error_code: Machine-readable error code (e.g. ``"insufficient_balance"``).
        message: Human-readable error description.
    """

    error_code: str = "ledger_error"

    def __init__(self, message: str) -> None:
        self.message: str = message
        super().__init__(f"{self.error_code}: {message}")


class InvalidOrderError(LedgerError):
    """Non-positive amount, negative price, or missing symbol."""

    error_code = "invalid_order"


class UnknownSymbolError(LedgerError):
    """Sell requested for a symbol with no position."""

    error_code = "unknown_symbol"

    def __init__(self, symbol: str) -> None:
        self.symbol: str = symbol
        super().__init__(f"No position held for {symbol}")


class InsufficientBalanceError(LedgerError):
    """Sell amount exceeds the held amount."""

    error_code = "insufficient_balance"

    def __init__(self, symbol: str, requested: Decimal, available: Decimal) -> None:
        self.symbol: str = symbol
        self.requested: Decimal = requested
        self.available: Decimal = available
        super().__init__(f"Cannot sell {requested} {symbol}, only {available} held")


class StaleLedgerError(LedgerError):
    """Ledger was saved by someone else since it was loaded."""

    error_code = "stale_ledger"

    def __init__(self, wallet_id: str, expected: int) -> None:
        self.wallet_id: str = wallet_id
        self.expected: int = expected
        super().__init__(
            f"Wallet {wallet_id} changed since it was loaded at version {expected}; reload and retry"
        )
