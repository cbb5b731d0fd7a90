"""Position accounting for a single wallet."""

from coinledger.ledger.errors import (
    InsufficientBalanceError,
    InvalidOrderError,
    LedgerError,
    StaleLedgerError,
    UnknownSymbolError,
)
from coinledger.ledger.ledger import DEFAULT_RETENTION_DAYS, PositionLedger, to_decimal

__all__ = [
    "DEFAULT_RETENTION_DAYS",
    "InsufficientBalanceError",
    "InvalidOrderError",
    "LedgerError",
    "PositionLedger",
    "StaleLedgerError",
    "UnknownSymbolError",
    "to_decimal",
]
