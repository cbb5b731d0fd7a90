"""SQLite-backed store for buy/sell transaction records."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from coinledger.models.position import normalize_symbol
from coinledger.models.transaction import (
    Transaction,
    TransactionStats,
    TransactionStatus,
    TypeStats,
)

if TYPE_CHECKING:
    from sqlite3 import Connection, Row

    from coinledger.db.sqlite.connection import Database


class SQLiteTransactionStore:
    """SQLite implementation of ``TransactionStore`` protocol."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _row_to_transaction(row: Row) -> Transaction:
        """Convert a database row to a ``Transaction``."""
        return Transaction(
            id=row["id"],
            wallet_id=row["wallet_id"],
            type=row["type"],
            symbol=row["symbol"],
            name=row["name"],
            amount=Decimal(row["amount"]),
            price=Decimal(row["price"]),
            fiat_currency=row["fiat_currency"],
            fiat_amount=Decimal(row["fiat_amount"]),
            fee_amount=Decimal(row["fee_amount"]),
            status=TransactionStatus(row["status"]),
            transaction_hash=row["transaction_hash"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _filters(
        wallet_id: str,
        type: Optional[str],
        symbol: Optional[str],
        status: Optional[str],
    ) -> tuple[str, list[object]]:
        clause = "wallet_id = ?"
        params: list[object] = [wallet_id]
        if type is not None:
            clause += " AND type = ?"
            params.append(type.lower())
        if symbol is not None:
            clause += " AND symbol = ?"
            params.append(normalize_symbol(symbol))
        if status is not None:
            clause += " AND status = ?"
            params.append(status.lower())
        return clause, params

    # -- protocol methods ----------------------------------------------------

    def record(self, transaction: Transaction, conn: Optional[Connection] = None) -> str:
        """Persist a transaction.

        Pass ``conn`` to write inside a transaction opened on the same database.

        Returns:
            The transaction ID.
        """
        with self.db.connect(conn) as c:
            c.execute(
                """
                INSERT INTO transactions (
                    id, wallet_id, type, symbol, name, amount, price,
                    fiat_currency, fiat_amount, fee_amount, status,
                    transaction_hash, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction.id,
                    transaction.wallet_id,
                    transaction.type,
                    transaction.symbol,
                    transaction.name,
                    str(transaction.amount),
                    str(transaction.price),
                    transaction.fiat_currency,
                    str(transaction.fiat_amount),
                    str(transaction.fee_amount),
                    transaction.status.value,
                    transaction.transaction_hash,
                    transaction.notes,
                    transaction.created_at.isoformat(),
                ),
            )
        return transaction.id

    def get(self, transaction_id: str) -> Optional[Transaction]:
        """Retrieve a transaction by ID."""
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
        return self._row_to_transaction(row) if row else None

    def list_transactions(
        self,
        wallet_id: str,
        type: Optional[str] = None,
        symbol: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[Transaction]:
        """Query a wallet's transactions with optional filters and pagination."""
        clause, params = self._filters(wallet_id, type, symbol, status)
        order = "DESC" if newest_first else "ASC"
        query = (
            f"SELECT * FROM transactions WHERE {clause} "  # noqa: S608
            f"ORDER BY created_at {order} LIMIT ? OFFSET ?"
        )
        params.extend([limit, offset])
        with self.db.connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_transaction(r) for r in rows]

    def count(
        self,
        wallet_id: str,
        type: Optional[str] = None,
        symbol: Optional[str] = None,
        status: Optional[str] = None,
    ) -> int:
        """Count a wallet's transactions matching the filters."""
        clause, params = self._filters(wallet_id, type, symbol, status)
        with self.db.connect() as conn:
            row = conn.execute(
                f"SELECT COUNT(*) FROM transactions WHERE {clause}",  # noqa: S608
                tuple(params),
            ).fetchone()
        return int(row[0]) if row else 0

    def stats(
        self,
        wallet_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> TransactionStats:
        """Summarize count, volume and fees per transaction type.

        Sums are done in Python so Decimal precision is preserved.
        """
        query = "SELECT type, fiat_amount, fee_amount FROM transactions WHERE wallet_id = ?"
        params: list[object] = [wallet_id]
        if start is not None:
            query += " AND created_at >= ?"
            params.append(start.isoformat())
        if end is not None:
            query += " AND created_at <= ?"
            params.append(end.isoformat())
        with self.db.connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()

        by_type: dict[str, TypeStats] = {}
        for row in rows:
            entry = by_type.setdefault(row["type"], TypeStats(type=row["type"]))
            entry.count += 1
            entry.total_amount += Decimal(row["fiat_amount"])
            entry.total_fees += Decimal(row["fee_amount"])

        types = sorted(by_type.values(), key=lambda t: t.type)
        return TransactionStats(
            total_transactions=sum(t.count for t in types),
            total_volume=sum((t.total_amount for t in types), Decimal("0")),
            total_fees=sum((t.total_fees for t in types), Decimal("0")),
            by_type=types,
        )
