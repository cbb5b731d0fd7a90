"""SQLite implementations of repository protocols."""

from coinledger.db.sqlite.connection import Database
from coinledger.db.sqlite.transaction_store import SQLiteTransactionStore
from coinledger.db.sqlite.wallet_store import SQLiteWalletStore

__all__ = [
    "Database",
    "SQLiteTransactionStore",
    "SQLiteWalletStore",
]
