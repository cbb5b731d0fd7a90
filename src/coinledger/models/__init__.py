"""Pydantic models for data representation."""

from coinledger.models.config import AppConfig, CoinGeckoConfig
from coinledger.models.position import PortfolioSummary, Position, normalize_symbol
from coinledger.models.snapshot import PortfolioSnapshot, SymbolSnapshot
from coinledger.models.transaction import (
    Transaction,
    TransactionStats,
    TransactionStatus,
    TypeStats,
)
from coinledger.models.wallet import FiatCurrency, WalletRecord

__all__ = [
    # Core models
    "Position",
    "PortfolioSummary",
    "PortfolioSnapshot",
    "SymbolSnapshot",
    "normalize_symbol",
    # Transactions
    "Transaction",
    "TransactionStats",
    "TransactionStatus",
    "TypeStats",
    # Wallets
    "FiatCurrency",
    "WalletRecord",
    # Config models
    "AppConfig",
    "CoinGeckoConfig",
]
