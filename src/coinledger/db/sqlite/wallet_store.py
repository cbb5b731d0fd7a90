"""SQLite-backed store for wallets and their ledgers."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Optional

from coinledger.ledger.errors import StaleLedgerError
from coinledger.ledger.ledger import DEFAULT_RETENTION_DAYS, PositionLedger
from coinledger.models.position import Position
from coinledger.models.snapshot import PortfolioSnapshot, SymbolSnapshot
from coinledger.models.wallet import FiatCurrency, WalletRecord

if TYPE_CHECKING:
    from sqlite3 import Connection, Row

    from coinledger.db.sqlite.connection import Database

logger = logging.getLogger(__name__)


class SQLiteWalletStore:
    """SQLite implementation of ``WalletStore`` protocol.

    Wallet metadata lives in ``wallets``. A wallet's ledger is persisted as
    its position rows plus its snapshot rows and is always written as a
    whole, in a single transaction. Every save bumps ``wallets.version``;
    saving a ledger loaded at an older version raises ``StaleLedgerError``.

    Methods accept an optional ``conn`` so several calls can share one
    ``transaction()``.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _row_to_wallet(row: Row) -> WalletRecord:
        """Convert a database row to a ``WalletRecord``."""
        return WalletRecord(
            id=row["id"],
            owner=row["owner"],
            fiat_currency=FiatCurrency(row["fiat_currency"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _row_to_position(row: Row) -> Position:
        return Position(
            symbol=row["symbol"],
            name=row["name"],
            amount=Decimal(row["amount"]),
            average_cost=Decimal(row["average_cost"]),
            current_price=Decimal(row["current_price"]),
        )

    @staticmethod
    def _row_to_snapshot(row: Row) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            timestamp=datetime.fromisoformat(row["timestamp"]),
            total_value=Decimal(row["total_value"]),
            positions=[
                SymbolSnapshot(
                    symbol=item["symbol"],
                    amount=Decimal(item["amount"]),
                    price=Decimal(item["price"]),
                    value=Decimal(item["value"]),
                )
                for item in json.loads(row["positions_json"])
            ],
        )

    @staticmethod
    def _snapshot_positions_json(snapshot: PortfolioSnapshot) -> str:
        return json.dumps(
            [
                {
                    "symbol": s.symbol,
                    "amount": str(s.amount),
                    "price": str(s.price),
                    "value": str(s.value),
                }
                for s in snapshot.positions
            ]
        )

    # -- wallets -------------------------------------------------------------

    def create_wallet(self, owner: str, fiat_currency: str = "USD") -> WalletRecord:
        """Create a wallet for ``owner``.

        Raises:
            sqlite3.IntegrityError: If the owner already has a wallet
        """
        wallet = WalletRecord(owner=owner, fiat_currency=FiatCurrency(fiat_currency.upper()))
        with self.db.connect() as conn:
            conn.execute(
                """
                INSERT INTO wallets (id, owner, fiat_currency, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    wallet.id,
                    wallet.owner,
                    wallet.fiat_currency.value,
                    wallet.created_at.isoformat(),
                    wallet.updated_at.isoformat(),
                ),
            )
        logger.info(f"Created wallet {wallet.id} for {owner}")
        return wallet

    def get_wallet(
        self, wallet_id: str, conn: Optional[Connection] = None
    ) -> Optional[WalletRecord]:
        """Retrieve a wallet by ID."""
        with self.db.connect(conn) as c:
            row = c.execute("SELECT * FROM wallets WHERE id = ?", (wallet_id,)).fetchone()
        return self._row_to_wallet(row) if row else None

    def get_wallet_by_owner(self, owner: str) -> Optional[WalletRecord]:
        """Retrieve the wallet belonging to ``owner``."""
        with self.db.connect() as conn:
            row = conn.execute("SELECT * FROM wallets WHERE owner = ?", (owner,)).fetchone()
        return self._row_to_wallet(row) if row else None

    def list_wallets(self) -> list[WalletRecord]:
        """List all wallets, oldest first."""
        with self.db.connect() as conn:
            rows = conn.execute("SELECT * FROM wallets ORDER BY created_at ASC").fetchall()
        return [self._row_to_wallet(r) for r in rows]

    def update_currency(self, wallet_id: str, fiat_currency: str) -> None:
        """Change a wallet's settlement currency."""
        currency = FiatCurrency(fiat_currency.upper())
        with self.db.connect() as conn:
            conn.execute(
                "UPDATE wallets SET fiat_currency = ?, updated_at = ? WHERE id = ?",
                (currency.value, datetime.now().isoformat(), wallet_id),
            )

    # -- ledgers -------------------------------------------------------------

    def transaction(self) -> AbstractContextManager[Connection]:
        """Open a write transaction; pass the connection to ``conn=`` arguments."""
        return self.db.transaction()

    def load_ledger(
        self,
        wallet_id: str,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        conn: Optional[Connection] = None,
    ) -> PositionLedger:
        """Rebuild a wallet's ledger from its stored positions and snapshots."""
        with self.db.connect(conn) as c:
            wallet_row = c.execute(
                "SELECT version FROM wallets WHERE id = ?", (wallet_id,)
            ).fetchone()
            position_rows = c.execute(
                "SELECT * FROM positions WHERE wallet_id = ? ORDER BY seq ASC",
                (wallet_id,),
            ).fetchall()
            snapshot_rows = c.execute(
                "SELECT * FROM portfolio_snapshots WHERE wallet_id = ? ORDER BY timestamp ASC, id ASC",
                (wallet_id,),
            ).fetchall()
        return PositionLedger(
            retention_days=retention_days,
            positions=[self._row_to_position(r) for r in position_rows],
            snapshots=[self._row_to_snapshot(r) for r in snapshot_rows],
            version=wallet_row["version"] if wallet_row else 0,
        )

    def save_ledger(
        self,
        wallet_id: str,
        ledger: PositionLedger,
        conn: Optional[Connection] = None,
    ) -> None:
        """Replace the stored positions and snapshots of a wallet.

        Raises:
            StaleLedgerError: If the wallet was saved since ``ledger`` was
                loaded (or the wallet does not exist). Nothing is written.
        """
        positions = ledger.positions
        snapshots = ledger.snapshots
        with self.db.connect(conn) as c:
            cursor = c.execute(
                "UPDATE wallets SET version = version + 1, updated_at = ? "
                "WHERE id = ? AND version = ?",
                (datetime.now().isoformat(), wallet_id, ledger.version),
            )
            if cursor.rowcount != 1:
                raise StaleLedgerError(wallet_id, ledger.version)
            c.execute("DELETE FROM positions WHERE wallet_id = ?", (wallet_id,))
            c.executemany(
                """
                INSERT INTO positions (
                    wallet_id, symbol, name, amount, average_cost, current_price, seq
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        wallet_id,
                        p.symbol,
                        p.name,
                        str(p.amount),
                        str(p.average_cost),
                        str(p.current_price),
                        seq,
                    )
                    for seq, p in enumerate(positions)
                ],
            )
            c.execute("DELETE FROM portfolio_snapshots WHERE wallet_id = ?", (wallet_id,))
            c.executemany(
                """
                INSERT INTO portfolio_snapshots (wallet_id, timestamp, total_value, positions_json)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (
                        wallet_id,
                        s.timestamp.isoformat(),
                        str(s.total_value),
                        self._snapshot_positions_json(s),
                    )
                    for s in snapshots
                ],
            )
        ledger.version += 1
        logger.debug(
            f"Saved ledger for wallet {wallet_id} at version {ledger.version}: "
            f"{len(positions)} positions, {len(snapshots)} snapshots"
        )
