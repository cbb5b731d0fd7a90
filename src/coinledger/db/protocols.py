"""Repository protocol definitions.

Defines structural typing protocols (PEP 544) for the persistence
interfaces. The service layer depends on these Protocols, never on a
concrete implementation, so the storage backend can be swapped without
touching any consumers.
"""

from __future__ import annotations

from datetime import datetime
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from coinledger.ledger.ledger import PositionLedger
    from coinledger.models.transaction import Transaction, TransactionStats
    from coinledger.models.wallet import WalletRecord


@runtime_checkable
class WalletStore(Protocol):
    """Interface for wallet and ledger persistence.

    Implementations: ``SQLiteWalletStore``.
    """

    def create_wallet(self, owner: str, fiat_currency: str = "USD") -> WalletRecord:
        """Create a wallet for ``owner``."""
        ...

    def get_wallet(self, wallet_id: str, conn: Optional[Any] = None) -> Optional[WalletRecord]:
        """Retrieve a wallet by ID, or None."""
        ...

    def get_wallet_by_owner(self, owner: str) -> Optional[WalletRecord]:
        """Retrieve the wallet belonging to ``owner``, or None."""
        ...

    def list_wallets(self) -> list[WalletRecord]:
        """List all wallets."""
        ...

    def update_currency(self, wallet_id: str, fiat_currency: str) -> None:
        """Change a wallet's settlement currency."""
        ...

    def transaction(self) -> AbstractContextManager[Any]:
        """Open a write transaction that excludes other writers.

        The yielded handle is passed as ``conn`` to store methods (on this
        store and on the ``TransactionStore`` sharing its backend) so they
        commit or roll back together.
        """
        ...

    def load_ledger(
        self,
        wallet_id: str,
        retention_days: int = 365,
        conn: Optional[Any] = None,
    ) -> PositionLedger:
        """Rebuild a wallet's ledger from storage.

        Args:
            wallet_id: Wallet to load.
            retention_days: Snapshot retention for the returned ledger.
            conn: Optional handle from ``transaction()``.

        Returns:
            A ledger holding the stored positions and snapshots. Empty when
            nothing has been saved yet.
        """
        ...

    def save_ledger(
        self, wallet_id: str, ledger: PositionLedger, conn: Optional[Any] = None
    ) -> None:
        """Persist the full state of a wallet's ledger atomically.

        Raises:
            StaleLedgerError: If the stored ledger changed since ``ledger`` was loaded.
        """
        ...


@runtime_checkable
class TransactionStore(Protocol):
    """Interface for transaction record persistence.

    Implementations: ``SQLiteTransactionStore``.
    """

    def record(self, transaction: Transaction, conn: Optional[Any] = None) -> str:
        """Persist a transaction and return its ID."""
        ...

    def get(self, transaction_id: str) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None."""
        ...

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
        """Query transactions with optional filters and pagination."""
        ...

    def count(
        self,
        wallet_id: str,
        type: Optional[str] = None,
        symbol: Optional[str] = None,
        status: Optional[str] = None,
    ) -> int:
        """Count transactions matching the filters."""
        ...

    def stats(
        self,
        wallet_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> TransactionStats:
        """Summarize transactions per type within an optional window."""
        ...
