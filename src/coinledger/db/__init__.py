"""Database layer: Protocol interfaces + SQLite implementations.

Usage:
    # Protocol types (for type hints in business logic)
    from coinledger.db.protocols import WalletStore, TransactionStore

    # SQLite implementations (for composition roots)
    from coinledger.db.sqlite import SQLiteWalletStore, SQLiteTransactionStore

    # Factory (convenience)
    from coinledger.db.factory import create_sqlite_stores
"""

from coinledger.db.factory import StoreBundle, create_sqlite_stores
from coinledger.db.protocols import TransactionStore, WalletStore
from coinledger.db.sqlite.schema import SCHEMA_SQL, SCHEMA_VERSION

__all__ = [
    "SCHEMA_SQL",
    "SCHEMA_VERSION",
    # Protocols
    "TransactionStore",
    "WalletStore",
    # Factory
    "StoreBundle",
    "create_sqlite_stores",
]
