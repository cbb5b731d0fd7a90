"""Position ledger for a single wallet.

Holds the per-symbol positions and the bounded series of valuation
snapshots. Buys blend into a weighted-average cost; sells reduce quantity
without touching cost basis; price updates only refresh ``current_price``.
Derived numbers (value, P&L, aggregates) are always computed from the
stored inputs at read time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from coinledger.ledger.errors import (
    InsufficientBalanceError,
    InvalidOrderError,
    UnknownSymbolError,
)
from coinledger.models.position import ZERO, PortfolioSummary, Position, normalize_symbol
from coinledger.models.snapshot import PortfolioSnapshot, SymbolSnapshot, to_local_naive

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 365

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number, field: str) -> Decimal:
    """Coerce an order input to a finite ``Decimal``.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        InvalidOrderError: If the value is missing, boolean, or not a finite number
    """
    if value is None or isinstance(value, bool):
        raise InvalidOrderError(f"{field} is required")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidOrderError(f"{field} must be a number, got {value!r}") from e
    if not result.is_finite():
        raise InvalidOrderError(f"{field} must be finite, got {value!r}")
    return result


class PositionLedger:
    """
    Positions and valuation history for one wallet.

    All public methods take the ledger's re-entrant lock, so a single
    instance can be shared between a price poller and an order handler.

    Attributes:
        retention_days: Trailing window of snapshots kept on each append
        version: Storage revision the ledger was loaded at (0 if never saved)
    """

    def __init__(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        positions: Optional[Iterable[Position]] = None,
        snapshots: Optional[Iterable[PortfolioSnapshot]] = None,
        version: int = 0,
    ) -> None:
        """Create a ledger, optionally restoring persisted state.

        Args:
            retention_days: Snapshot retention window in days
            positions: Positions to restore, in display order
            snapshots: Snapshots to restore (any order)
            version: Storage revision of the restored state
        """
        if retention_days < 0:
            raise ValueError("retention_days must be non-negative")
        self.retention_days = retention_days
        self.version = version
        self._lock = threading.RLock()
        self._positions: dict[str, Position] = {}
        for position in positions or ():
            self._positions[position.symbol] = position.model_copy()
        self._snapshots: list[PortfolioSnapshot] = sorted(
            snapshots or (), key=lambda s: s.timestamp
        )

    # -- read access ---------------------------------------------------------

    @property
    def positions(self) -> list[Position]:
        """Copies of the held positions in insertion order."""
        with self._lock:
            return [p.model_copy() for p in self._positions.values()]

    @property
    def snapshots(self) -> list[PortfolioSnapshot]:
        """All retained snapshots, oldest first."""
        with self._lock:
            return list(self._snapshots)

    def get_position(self, symbol: str) -> Optional[Position]:
        """Return a copy of the position for ``symbol``, or None if not held."""
        with self._lock:
            position = self._positions.get(normalize_symbol(symbol))
            return position.model_copy() if position is not None else None

    def __contains__(self, symbol: object) -> bool:
        if not isinstance(symbol, str):
            return False
        with self._lock:
            return normalize_symbol(symbol) in self._positions

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)

    # -- orders --------------------------------------------------------------

    @staticmethod
    def _validate_order(symbol: str, amount: Number, price: Number) -> tuple[str, Decimal, Decimal]:
        if not isinstance(symbol, str) or not symbol.strip():
            raise InvalidOrderError("symbol is required")
        qty = to_decimal(amount, "amount")
        px = to_decimal(price, "price")
        if qty <= ZERO:
            raise InvalidOrderError(f"amount must be positive, got {qty}")
        if px < ZERO:
            raise InvalidOrderError(f"price must be non-negative, got {px}")
        return normalize_symbol(symbol), qty, px

    def apply_buy(self, symbol: str, name: Optional[str], amount: Number, price: Number) -> Position:
        """Add ``amount`` units bought at ``price``.

        A new symbol opens a position at cost ``price``. An existing one is
        merged: ``avg = (old_amt * old_avg + amount * price) / (old_amt + amount)``
        and ``current_price`` moves to ``price``.

        Args:
            symbol: Asset symbol (case-insensitive)
            name: Display name; the first non-empty name supplied is kept
            amount: Quantity bought, > 0
            price: Unit price, >= 0

        Returns:
            Copy of the resulting position

        Raises:
            InvalidOrderError: If amount or price is out of range
        """
        symbol, qty, px = self._validate_order(symbol, amount, price)
        display_name = (name or "").strip()

        with self._lock:
            existing = self._positions.get(symbol)
            if existing is None:
                position = Position(
                    symbol=symbol,
                    name=display_name,
                    amount=qty,
                    average_cost=px,
                    current_price=px,
                )
                self._positions[symbol] = position
                logger.info(f"Opened {symbol}: {qty} @ {px}")
            else:
                new_amount = existing.amount + qty
                new_avg = (existing.amount * existing.average_cost + qty * px) / new_amount
                existing.amount = new_amount
                existing.average_cost = new_avg
                existing.current_price = px
                if not existing.name and display_name:
                    existing.name = display_name
                position = existing
                logger.info(f"Added to {symbol}: +{qty} @ {px}, now {new_amount} @ {new_avg} avg")
            return position.model_copy()

    def apply_sell(self, symbol: str, amount: Number, price: Number) -> Decimal:
        """Remove ``amount`` units sold at ``price``.

        Average cost is left unchanged. When the held amount reaches exactly
        zero the position is deleted.

        Args:
            symbol: Asset symbol (case-insensitive)
            amount: Quantity sold, 0 < amount <= held
            price: Unit price, >= 0

        Returns:
            Realized proceeds (``amount * price``)

        Raises:
            InvalidOrderError: If amount or price is out of range
            UnknownSymbolError: If no position exists for ``symbol``
            InsufficientBalanceError: If ``amount`` exceeds the held amount
        """
        symbol, qty, px = self._validate_order(symbol, amount, price)

        with self._lock:
            position = self._positions.get(symbol)
            if position is None:
                raise UnknownSymbolError(symbol)
            if qty > position.amount:
                raise InsufficientBalanceError(symbol, qty, position.amount)

            remaining = position.amount - qty
            if remaining == ZERO:
                del self._positions[symbol]
                logger.info(f"Closed {symbol}: sold {qty} @ {px}")
            else:
                position.amount = remaining
                position.current_price = px
                logger.info(f"Reduced {symbol}: -{qty} @ {px}, {remaining} left")
            return qty * px

    def apply_price_update(self, prices: Mapping[str, Number]) -> list[str]:
        """Refresh ``current_price`` for every held symbol present in ``prices``.

        Symbols not held are ignored, held symbols not in the mapping keep
        their last price. Missing, negative or non-numeric quotes are skipped.

        Returns:
            Symbols whose price was updated
        """
        quotes: dict[str, Decimal] = {}
        for raw_symbol, raw_price in prices.items():
            try:
                px = to_decimal(raw_price, "price")
            except InvalidOrderError:
                logger.debug(f"Skipping unusable quote for {raw_symbol}: {raw_price!r}")
                continue
            if px < ZERO:
                logger.debug(f"Skipping negative quote for {raw_symbol}: {px}")
                continue
            quotes[normalize_symbol(raw_symbol)] = px

        updated: list[str] = []
        with self._lock:
            for symbol, position in self._positions.items():
                px = quotes.get(symbol)
                if px is None:
                    continue
                position.current_price = px
                updated.append(symbol)
        if updated:
            logger.debug(f"Updated prices for {', '.join(updated)}")
        return updated

    # -- aggregates and history ----------------------------------------------

    def aggregate(self) -> PortfolioSummary:
        """Compute totals from the current positions."""
        with self._lock:
            return PortfolioSummary.from_positions(list(self._positions.values()))

    def current_snapshot(self, now: Optional[datetime] = None) -> PortfolioSnapshot:
        """Build a snapshot of the current state without recording it."""
        with self._lock:
            return PortfolioSnapshot(
                timestamp=now or datetime.now(),
                total_value=self.aggregate().total_value,
                positions=[
                    SymbolSnapshot(
                        symbol=p.symbol,
                        amount=p.amount,
                        price=p.current_price,
                        value=p.value,
                    )
                    for p in self._positions.values()
                ],
            )

    def record_snapshot(self, now: Optional[datetime] = None) -> PortfolioSnapshot:
        """Append a snapshot taken at ``now`` and prune expired history.

        Pruning drops every snapshot older than ``now - retention_days`` and
        runs on every append, including when the new one is itself expired.
        Aware timestamps are converted to naive local time first.

        Returns:
            The snapshot that was appended
        """
        now = to_local_naive(now or datetime.now())
        cutoff = now - timedelta(days=self.retention_days)
        with self._lock:
            snapshot = self.current_snapshot(now)
            candidates = [*self._snapshots, snapshot]
            kept = sorted(
                (s for s in candidates if s.timestamp >= cutoff),
                key=lambda s: s.timestamp,
            )
            self._snapshots = kept
        pruned = len(candidates) - len(kept)
        if pruned:
            logger.debug(f"Pruned {pruned} snapshots older than {cutoff:%Y-%m-%d}")
        return snapshot

    def query_history(self, days: int, now: Optional[datetime] = None) -> list[PortfolioSnapshot]:
        """Return snapshots taken within the last ``days`` days, oldest first."""
        if days < 0:
            raise ValueError("days must be non-negative")
        cutoff = to_local_naive(now or datetime.now()) - timedelta(days=days)
        with self._lock:
            return [s for s in self._snapshots if s.timestamp >= cutoff]

    def __repr__(self) -> str:
        return (
            f"PositionLedger(positions={len(self._positions)}, "
            f"snapshots={len(self._snapshots)})"
        )
