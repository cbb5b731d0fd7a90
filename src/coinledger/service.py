"""Wallet service: wires ledgers, stores and the price feed together.

Every ledger mutation for a wallet runs load -> apply -> save (-> record)
under that wallet's in-process lock and inside one store write transaction.
The lock serializes threads; the transaction (``BEGIN IMMEDIATE`` on SQLite)
serializes separate processes such as ``cwl watch`` and ``cwl buy`` sharing
a database file, and makes the ledger write and the transaction record
commit together.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field

from coinledger.ledger.ledger import DEFAULT_RETENTION_DAYS, Number, PositionLedger, to_decimal
from coinledger.market.fallback import quotes_to_prices
from coinledger.models.position import PortfolioSummary, Position, normalize_symbol
from coinledger.models.snapshot import PortfolioSnapshot
from coinledger.models.transaction import DEFAULT_FEE_RATE, Transaction

if TYPE_CHECKING:
    from coinledger.db.factory import StoreBundle
    from coinledger.db.protocols import TransactionStore, WalletStore
    from coinledger.market.models import PriceQuote
    from coinledger.market.protocols import PriceFeed
    from coinledger.models.config import AppConfig
    from coinledger.models.wallet import WalletRecord

logger = logging.getLogger(__name__)


class WalletNotFoundError(LookupError):
    """Raised when an operation targets a wallet that does not exist."""

    def __init__(self, wallet_id: str) -> None:
        self.wallet_id = wallet_id
        super().__init__(f"Wallet not found: {wallet_id}")


class TradeResult(BaseModel):
    """Outcome of a buy or sell.

    Attributes:
        transaction: The recorded transaction
        position: Position after the trade, None if it was closed
        proceeds: Fiat notional of the trade (amount * price)
        summary: Wallet totals after the trade
    """

    transaction: Transaction
    position: Optional[Position] = None
    proceeds: Decimal = Field(default=Decimal("0"))
    summary: PortfolioSummary


class WalletService:
    """
    Applies orders, price refreshes and snapshots to persisted wallets.

    Attributes:
        wallets: Wallet and ledger persistence
        transactions: Transaction record persistence
        price_feed: Source of current prices
        fee_rate: Flat fee on each order's fiat notional
        retention_days: Snapshot retention passed to loaded ledgers
    """

    def __init__(
        self,
        wallets: WalletStore,
        transactions: TransactionStore,
        price_feed: PriceFeed,
        fee_rate: Decimal = DEFAULT_FEE_RATE,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self.wallets = wallets
        self.transactions = transactions
        self.price_feed = price_feed
        self.fee_rate = fee_rate
        self.retention_days = retention_days
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        stores: StoreBundle,
        price_feed: Optional[PriceFeed] = None,
    ) -> WalletService:
        """Build a service from settings, defaulting to CoinGecko with static fallback."""
        if price_feed is None:
            price_feed = build_price_feed(config)
        return cls(
            wallets=stores.wallets,
            transactions=stores.transactions,
            price_feed=price_feed,
            fee_rate=config.fee_rate,
            retention_days=config.history_retention_days,
        )

    # -- locking -------------------------------------------------------------

    def wallet_lock(self, wallet_id: str) -> threading.RLock:
        """Return the lock serializing ledger access for ``wallet_id``."""
        with self._locks_guard:
            lock = self._locks.get(wallet_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[wallet_id] = lock
            return lock

    def _require_wallet(self, wallet_id: str, conn: Optional[Any] = None) -> WalletRecord:
        wallet = self.wallets.get_wallet(wallet_id, conn=conn)
        if wallet is None:
            raise WalletNotFoundError(wallet_id)
        return wallet

    def _load(self, wallet_id: str, conn: Optional[Any] = None) -> PositionLedger:
        return self.wallets.load_ledger(wallet_id, retention_days=self.retention_days, conn=conn)

    # -- orders --------------------------------------------------------------

    def buy(
        self,
        wallet_id: str,
        symbol: str,
        name: Optional[str],
        amount: Number,
        price: Number,
        notes: Optional[str] = None,
    ) -> TradeResult:
        """Buy ``amount`` of ``symbol`` at ``price`` and record the transaction.

        Raises:
            WalletNotFoundError: If the wallet does not exist
            InvalidOrderError: If the order is malformed (nothing is written)
        """
        with self.wallet_lock(wallet_id), self.wallets.transaction() as conn:
            wallet = self._require_wallet(wallet_id, conn)
            ledger = self._load(wallet_id, conn)
            position = ledger.apply_buy(symbol, name, amount, price)

            transaction = Transaction.create(
                wallet_id=wallet_id,
                side="buy",
                symbol=position.symbol,
                name=position.name,
                amount=to_decimal(amount, "amount"),
                price=position.current_price,
                fee_rate=self.fee_rate,
                fiat_currency=wallet.fiat_currency.value,
                notes=notes,
            )
            transaction.complete()

            self.wallets.save_ledger(wallet_id, ledger, conn=conn)
            self.transactions.record(transaction, conn=conn)
            summary = ledger.aggregate()

        logger.info(f"Wallet {wallet_id}: {transaction}")
        return TradeResult(
            transaction=transaction,
            position=position,
            proceeds=transaction.fiat_amount,
            summary=summary,
        )

    def sell(
        self,
        wallet_id: str,
        symbol: str,
        amount: Number,
        price: Number,
        notes: Optional[str] = None,
    ) -> TradeResult:
        """Sell ``amount`` of ``symbol`` at ``price`` and record the transaction.

        Raises:
            WalletNotFoundError: If the wallet does not exist
            InvalidOrderError: If the order is malformed
            UnknownSymbolError: If the wallet holds no such position
            InsufficientBalanceError: If the wallet holds less than ``amount``
        """
        with self.wallet_lock(wallet_id), self.wallets.transaction() as conn:
            wallet = self._require_wallet(wallet_id, conn)
            ledger = self._load(wallet_id, conn)
            before = ledger.get_position(symbol) if isinstance(symbol, str) else None
            proceeds = ledger.apply_sell(symbol, amount, price)
            sym = normalize_symbol(symbol)

            transaction = Transaction.create(
                wallet_id=wallet_id,
                side="sell",
                symbol=sym,
                name=before.name if before is not None else "",
                amount=to_decimal(amount, "amount"),
                price=to_decimal(price, "price"),
                fee_rate=self.fee_rate,
                fiat_currency=wallet.fiat_currency.value,
                notes=notes,
            )
            transaction.complete()

            self.wallets.save_ledger(wallet_id, ledger, conn=conn)
            self.transactions.record(transaction, conn=conn)
            position = ledger.get_position(sym)
            summary = ledger.aggregate()

        logger.info(f"Wallet {wallet_id}: {transaction}")
        return TradeResult(
            transaction=transaction,
            position=position,
            proceeds=proceeds,
            summary=summary,
        )

    # -- prices --------------------------------------------------------------

    def get_quotes(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """Fetch quotes straight from the price feed."""
        return self.price_feed.get_quotes(symbols)

    def refresh_prices(self, wallet_id: str) -> list[str]:
        """Pull current prices for every held symbol and apply them.

        The feed is queried outside the wallet lock so a slow upstream does
        not block orders; the ledger is reloaded under the lock before the
        prices are applied.

        Returns:
            Symbols whose price was updated
        """
        self._require_wallet(wallet_id)
        symbols = [p.symbol for p in self._load(wallet_id).positions]
        if not symbols:
            return []
        prices = quotes_to_prices(self.price_feed.get_quotes(symbols))

        with self.wallet_lock(wallet_id), self.wallets.transaction() as conn:
            ledger = self._load(wallet_id, conn)
            updated = ledger.apply_price_update(prices)
            if updated:
                self.wallets.save_ledger(wallet_id, ledger, conn=conn)
        logger.info(f"Wallet {wallet_id}: refreshed {len(updated)}/{len(symbols)} prices")
        return updated

    # -- history and reporting -----------------------------------------------

    def record_snapshot(self, wallet_id: str, now: Optional[datetime] = None) -> PortfolioSnapshot:
        """Record a valuation snapshot and prune expired history."""
        with self.wallet_lock(wallet_id), self.wallets.transaction() as conn:
            self._require_wallet(wallet_id, conn)
            ledger = self._load(wallet_id, conn)
            snapshot = ledger.record_snapshot(now)
            self.wallets.save_ledger(wallet_id, ledger, conn=conn)
        logger.info(f"Wallet {wallet_id}: recorded {snapshot}")
        return snapshot

    def portfolio_history(
        self,
        wallet_id: str,
        days: int = 30,
        now: Optional[datetime] = None,
    ) -> list[PortfolioSnapshot]:
        """Snapshots from the last ``days`` days, oldest first.

        When no snapshot falls in the window, a single unrecorded snapshot of
        the current state is returned so charts always have a point.
        """
        self._require_wallet(wallet_id)
        ledger = self._load(wallet_id)
        history = ledger.query_history(days, now)
        if not history:
            history = [ledger.current_snapshot(now)]
        return history

    def summary(self, wallet_id: str) -> PortfolioSummary:
        """Aggregate metrics for a wallet."""
        self._require_wallet(wallet_id)
        return self._load(wallet_id).aggregate()

    def positions(self, wallet_id: str) -> list[Position]:
        """Current positions for a wallet, in display order."""
        self._require_wallet(wallet_id)
        return self._load(wallet_id).positions


def build_price_feed(config: AppConfig) -> PriceFeed:
    """CoinGecko feed wrapped with the static (or TOML-configured) fallback table."""
    from coinledger.core.config import load_price_table
    from coinledger.market.coingecko import CoinGeckoPriceFeed
    from coinledger.market.fallback import FallbackPriceFeed
    from coinledger.market.static import StaticPriceFeed

    table = load_price_table(config.price_table_path) if config.price_table_path else None
    primary = CoinGeckoPriceFeed(
        base_url=config.coingecko.base_url,
        api_key=config.coingecko.get_api_key(),
        timeout=config.coingecko.timeout,
        vs_currency=config.fiat_currency,
    )
    return FallbackPriceFeed(primary, StaticPriceFeed(table))
