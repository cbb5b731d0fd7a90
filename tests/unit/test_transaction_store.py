"""Unit tests for SQLiteTransactionStore."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from coinledger.db.sqlite.connection import Database
from coinledger.db.sqlite.transaction_store import SQLiteTransactionStore
from coinledger.models.transaction import Transaction, TransactionStatus

T0 = datetime(2024, 5, 1, 10, 0)


@pytest.fixture
def store() -> SQLiteTransactionStore:
    """Create a transaction store on an in-memory database."""
    database = Database(":memory:")
    yield SQLiteTransactionStore(database)
    database.close()


def _make_tx(
    side: str = "buy",
    symbol: str = "BTC",
    amount: str = "1",
    price: str = "10000",
    wallet_id: str = "w1",
    minutes: int = 0,
) -> Transaction:
    """Create a completed transaction with sensible defaults."""
    tx = Transaction.create(
        wallet_id=wallet_id,
        side=side,
        symbol=symbol,
        name=symbol.title(),
        amount=Decimal(amount),
        price=Decimal(price),
    )
    tx.created_at = T0 + timedelta(minutes=minutes)
    tx.complete()
    return tx


class TestRecordAndGet:
    """Tests for persisting single transactions."""

    def test_round_trip(self, store: SQLiteTransactionStore) -> None:
        """A recorded transaction is returned unchanged."""
        tx = _make_tx(amount="0.12345678", price="43250.75")
        tx.notes = "first buy"

        assert store.record(tx) == tx.id
        assert store.get(tx.id) == tx

    def test_missing(self, store: SQLiteTransactionStore) -> None:
        """Unknown IDs return None."""
        assert store.get("missing") is None


class TestListing:
    """Tests for filtering and pagination."""

    @pytest.fixture
    def populated(self, store: SQLiteTransactionStore) -> SQLiteTransactionStore:
        store.record(_make_tx("buy", "BTC", minutes=0))
        store.record(_make_tx("buy", "ETH", price="2000", minutes=1))
        store.record(_make_tx("sell", "BTC", price="12000", minutes=2))
        store.record(_make_tx("buy", "SOL", price="100", minutes=3, wallet_id="w2"))
        return store

    def test_newest_first(self, populated: SQLiteTransactionStore) -> None:
        """Default ordering is most recent first, scoped to the wallet."""
        rows = populated.list_transactions("w1")
        assert [(t.type, t.symbol) for t in rows] == [("sell", "BTC"), ("buy", "ETH"), ("buy", "BTC")]

    def test_oldest_first(self, populated: SQLiteTransactionStore) -> None:
        """Ordering can be reversed."""
        rows = populated.list_transactions("w1", newest_first=False)
        assert rows[0].symbol == "BTC" and rows[0].type == "buy"

    def test_filters(self, populated: SQLiteTransactionStore) -> None:
        """Type and symbol filters combine."""
        assert len(populated.list_transactions("w1", type="buy")) == 2
        assert len(populated.list_transactions("w1", symbol="btc")) == 2
        assert len(populated.list_transactions("w1", type="sell", symbol="BTC")) == 1
        assert len(populated.list_transactions("w1", status="failed")) == 0

    def test_pagination(self, populated: SQLiteTransactionStore) -> None:
        """Limit and offset page through results."""
        page1 = populated.list_transactions("w1", limit=2, offset=0)
        page2 = populated.list_transactions("w1", limit=2, offset=2)

        assert len(page1) == 2
        assert len(page2) == 1
        assert {t.id for t in page1}.isdisjoint({t.id for t in page2})

    def test_count(self, populated: SQLiteTransactionStore) -> None:
        """Counts honour the filters."""
        assert populated.count("w1") == 3
        assert populated.count("w1", type="sell") == 1
        assert populated.count("w2") == 1


class TestStats:
    """Tests for per-type statistics."""

    def test_stats(self, store: SQLiteTransactionStore) -> None:
        """Volume and fees are totalled per type and overall."""
        store.record(_make_tx("buy", "BTC", amount="2", price="10000", minutes=0))
        store.record(_make_tx("buy", "ETH", amount="1", price="2000", minutes=1))
        store.record(_make_tx("sell", "BTC", amount="1", price="12000", minutes=2))

        stats = store.stats("w1")

        assert stats.total_transactions == 3
        assert stats.total_volume == Decimal("34000")
        assert stats.total_fees == Decimal("340")
        by_type = {t.type: t for t in stats.by_type}
        assert by_type["buy"].count == 2
        assert by_type["buy"].total_amount == Decimal("22000")
        assert by_type["sell"].total_fees == Decimal("120")

    def test_stats_date_window(self, store: SQLiteTransactionStore) -> None:
        """Only transactions inside the window are counted."""
        store.record(_make_tx(minutes=0))
        store.record(_make_tx(minutes=60))

        stats = store.stats("w1", start=T0 + timedelta(minutes=30))

        assert stats.total_transactions == 1

    def test_stats_empty(self, store: SQLiteTransactionStore) -> None:
        """A wallet with no transactions has zero totals."""
        stats = store.stats("w1")
        assert stats.total_transactions == 0
        assert stats.by_type == []
        assert stats.total_volume == Decimal("0")

    def test_status_round_trip(self, store: SQLiteTransactionStore) -> None:
        """Status survives storage."""
        tx = _make_tx()
        tx.fail("declined")
        store.record(tx)

        assert store.get(tx.id).status == TransactionStatus.FAILED
