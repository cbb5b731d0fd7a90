"""SQLite database connection management."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Generator, Optional, Union

from coinledger.db.sqlite.schema import SCHEMA_SQL

if TYPE_CHECKING:
    from sqlite3 import Connection

# Seconds to wait for another writer to release the database lock
BUSY_TIMEOUT = 30.0


class Database:
    """
    SQLite database connection manager.

    Handles connection lifecycle, schema initialization, and transactions.

    Attributes:
        db_path: Path to the SQLite database file or ":memory:" for in-memory
    """

    def __init__(self, db_path: Optional[Union[Path, str]] = None):
        """
        Initialize the database.

        Args:
            db_path: Path to database file or ":memory:" for in-memory database.
                     If None, uses the default path from AppConfig.
        """
        if db_path is None:
            from coinledger.models.config import AppConfig
            config = AppConfig()
            db_path = config.database_path

        self.db_path = str(db_path) if isinstance(db_path, Path) else db_path
        self._is_memory = self.db_path == ":memory:"

        # In-memory databases share one connection, serialized by this lock
        self._memory_conn: Optional[Connection] = None
        self._memory_lock = threading.RLock()

        if not self._is_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)

    def _memory_connection(self) -> Connection:
        if self._memory_conn is None:
            self._memory_conn = sqlite3.connect(":memory:", check_same_thread=False)
            self._memory_conn.row_factory = sqlite3.Row
        return self._memory_conn

    @contextmanager
    def connect(self, existing: Optional[Connection] = None) -> Generator[Connection, None, None]:
        """
        Get a database connection as a context manager.

        Handles transaction commit/rollback automatically.
        Returns dict-like Row objects for query results.

        For in-memory databases, reuses the same connection.
        For file databases, creates a new connection each time.
        When ``existing`` is given it is yielded untouched, so store methods
        can join a transaction opened by ``transaction()``.

        Example:
            with db.connect() as conn:
                cursor = conn.execute("SELECT * FROM wallets")
                rows = cursor.fetchall()
        """
        if existing is not None:
            yield existing
        elif self._is_memory:
            with self._memory_lock:
                conn = self._memory_connection()
                try:
                    yield conn
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        else:
            conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Open a write transaction holding the database write lock.

        Runs ``BEGIN IMMEDIATE`` before yielding, so a load -> modify -> save
        sequence on the yielded connection excludes writers in other
        processes as well as other threads. Commits on success and rolls
        back on error.

        Example:
            with db.transaction() as conn:
                ledger = wallets.load_ledger(wallet_id, conn=conn)
                ledger.apply_buy("BTC", "Bitcoin", 1, 100)
                wallets.save_ledger(wallet_id, ledger, conn=conn)
        """
        if self._is_memory:
            with self._memory_lock:
                conn = self._memory_connection()
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        else:
            conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT, isolation_level=None)
            conn.row_factory = sqlite3.Row
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                conn.close()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database."""
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
                (table_name,)
            )
            return cursor.fetchone() is not None

    def close(self) -> None:
        """Close the database connection (for in-memory databases)."""
        if self._memory_conn is not None:
            self._memory_conn.close()
            self._memory_conn = None
