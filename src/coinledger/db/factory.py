"""Factory for creating store bundles backed by different storage engines."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from coinledger.db.protocols import TransactionStore, WalletStore
    from coinledger.db.sqlite.connection import Database


@dataclass
class StoreBundle:
    """All stores wired to the same backend.

    Used at composition roots (CLI, tests) to wire up the service.
    """

    wallets: WalletStore
    transactions: TransactionStore
    db: Optional[Database] = None


def create_sqlite_stores(db_path: Optional[Union[str, Path]] = None) -> StoreBundle:
    """Create all stores backed by SQLite.

    Args:
        db_path: Optional path to SQLite database file.
                 If None, uses the default path from AppConfig.
                 Use ":memory:" for in-memory testing.

    Returns:
        StoreBundle with all stores wired to the same SQLite database.
    """
    from coinledger.db.sqlite.connection import Database
    from coinledger.db.sqlite.transaction_store import SQLiteTransactionStore
    from coinledger.db.sqlite.wallet_store import SQLiteWalletStore

    db = Database(db_path)
    return StoreBundle(
        wallets=SQLiteWalletStore(db),
        transactions=SQLiteTransactionStore(db),
        db=db,
    )
