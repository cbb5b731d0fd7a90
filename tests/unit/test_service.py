"""Tests for WalletService: orders, refreshes, snapshots and locking."""

import threading
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from coinledger.db.factory import StoreBundle, create_sqlite_stores
from coinledger.db.sqlite.transaction_store import SQLiteTransactionStore
from coinledger.ledger import (
    InsufficientBalanceError,
    InvalidOrderError,
    StaleLedgerError,
    UnknownSymbolError,
)
from coinledger.market.fallback import FallbackPriceFeed
from coinledger.market.models import PriceFeedError, PriceQuote
from coinledger.market.static import StaticPriceFeed
from coinledger.models.config import AppConfig
from coinledger.models.transaction import TransactionStatus
from coinledger.service import WalletNotFoundError, WalletService, build_price_feed

NOW = datetime(2024, 6, 1, 12, 0)


class TestBuy:
    """Tests for WalletService.buy."""

    def test_buy_persists_position_and_transaction(
        self, service: WalletService, wallet_id: str
    ) -> None:
        """A buy updates the stored ledger and records a completed transaction."""
        result = service.buy(wallet_id, "btc", "Bitcoin", "2", "10000", notes="dca")

        assert result.position.amount == Decimal("2")
        assert result.proceeds == Decimal("20000")
        assert result.summary.total_invested == Decimal("20000")

        tx = result.transaction
        assert tx.symbol == "BTC"
        assert tx.fee_amount == Decimal("200")
        assert tx.status == TransactionStatus.COMPLETED
        assert tx.transaction_hash.startswith("0xbubtc")
        assert service.transactions.get(tx.id) == tx
        assert service.positions(wallet_id)[0].symbol == "BTC"

    def test_fee_does_not_change_average_cost(
        self, service: WalletService, wallet_id: str
    ) -> None:
        """Fees are recorded on the transaction only."""
        service.buy(wallet_id, "BTC", "Bitcoin", 2, 10000)
        service.buy(wallet_id, "BTC", "Bitcoin", 1, 13000)

        position = service.positions(wallet_id)[0]
        assert position.average_cost == Decimal("11000")

    def test_transaction_uses_wallet_currency(
        self, service: WalletService
    ) -> None:
        wallet = service.wallets.create_wallet("bob", "EUR")
        result = service.buy(wallet.id, "ETH", "Ethereum", 1, 2000)
        assert result.transaction.fiat_currency == "EUR"

    def test_custom_fee_rate(self, stores: StoreBundle, static_feed: StaticPriceFeed) -> None:
        """The service fee rate flows into transactions."""
        service = WalletService(
            stores.wallets, stores.transactions, static_feed, fee_rate=Decimal("0")
        )
        wallet = stores.wallets.create_wallet("carol")

        result = service.buy(wallet.id, "BTC", "Bitcoin", 1, 100)

        assert result.transaction.fee_amount == Decimal("0")

    def test_invalid_buy_writes_nothing(self, service: WalletService, wallet_id: str) -> None:
        """Rejected orders leave no trace."""
        with pytest.raises(InvalidOrderError):
            service.buy(wallet_id, "BTC", "Bitcoin", 0, 100)
        with pytest.raises(InvalidOrderError):
            service.buy(wallet_id, "BTC", "Bitcoin", 1, "abc")

        assert service.positions(wallet_id) == []
        assert service.transactions.count(wallet_id) == 0

    def test_overlong_notes_write_nothing(self, service: WalletService, wallet_id: str) -> None:
        """Notes over 500 characters fail validation and roll back the order."""
        with pytest.raises(ValidationError):
            service.buy(wallet_id, "BTC", "Bitcoin", 1, 100, notes="x" * 501)

        assert service.positions(wallet_id) == []
        assert service.transactions.count(wallet_id) == 0

    def test_failed_record_rolls_back_ledger(self, stores: StoreBundle, static_feed) -> None:
        """The position and its transaction record commit together."""

        class FailingTransactions(SQLiteTransactionStore):
            def record(self, transaction, conn=None):
                raise RuntimeError("disk full")

        service = WalletService(
            stores.wallets, FailingTransactions(stores.db), static_feed
        )
        wallet = stores.wallets.create_wallet("frank")

        with pytest.raises(RuntimeError):
            service.buy(wallet.id, "BTC", "Bitcoin", 1, 100)

        assert stores.wallets.load_ledger(wallet.id).positions == []

    def test_unknown_wallet(self, service: WalletService) -> None:
        with pytest.raises(WalletNotFoundError):
            service.buy("missing", "BTC", "Bitcoin", 1, 100)


class TestSell:
    """Tests for WalletService.sell."""

    def test_partial_sell(self, service: WalletService, wallet_id: str) -> None:
        """A partial sell keeps the cost basis and records the trade."""
        service.buy(wallet_id, "BTC", "Bitcoin", 3, 11000)

        result = service.sell(wallet_id, "btc", 1, 12000)

        assert result.proceeds == Decimal("12000")
        assert result.position.amount == Decimal("2")
        assert result.position.average_cost == Decimal("11000")
        assert result.position.current_price == Decimal("12000")
        assert result.transaction.type == "sell"
        assert result.transaction.name == "Bitcoin"
        assert result.transaction.fee_amount == Decimal("120")

    def test_full_sell_closes_position(self, service: WalletService, wallet_id: str) -> None:
        """Selling everything removes the position."""
        service.buy(wallet_id, "ETH", "Ethereum", "1.5", 2000)

        result = service.sell(wallet_id, "ETH", "1.5", 2500)

        assert result.position is None
        assert service.positions(wallet_id) == []
        assert service.transactions.count(wallet_id) == 2

    def test_oversell_rejected(self, service: WalletService, wallet_id: str) -> None:
        """Selling more than held fails and writes nothing."""
        service.buy(wallet_id, "BTC", "Bitcoin", 1, 100)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            service.sell(wallet_id, "BTC", 2, 100)

        assert exc_info.value.available == Decimal("1")
        assert service.positions(wallet_id)[0].amount == Decimal("1")
        assert service.transactions.count(wallet_id, type="sell") == 0

    def test_sell_unknown_symbol(self, service: WalletService, wallet_id: str) -> None:
        with pytest.raises(UnknownSymbolError):
            service.sell(wallet_id, "DOGE", 1, 1)


class TestPrices:
    """Tests for price refreshes."""

    def test_refresh_updates_held_symbols(self, service: WalletService, wallet_id: str) -> None:
        """Held symbols take the feed price and the change is persisted."""
        service.buy(wallet_id, "BTC", "Bitcoin", 1, 10000)
        service.buy(wallet_id, "SOL", "Solana", 10, 90)

        updated = service.refresh_prices(wallet_id)

        assert updated == ["BTC"]
        positions = {p.symbol: p for p in service.positions(wallet_id)}
        assert positions["BTC"].current_price == Decimal("12000")
        assert positions["SOL"].current_price == Decimal("90")
        assert service.summary(wallet_id).total_profit_loss == Decimal("2000")

    def test_refresh_reports_unchanged_prices(self, service: WalletService, wallet_id: str) -> None:
        """A quoted symbol is reported even when its price did not move."""
        service.buy(wallet_id, "BTC", "Bitcoin", 1, 12000)

        assert service.refresh_prices(wallet_id) == ["BTC"]

    def test_refresh_empty_wallet(self, service: WalletService, wallet_id: str) -> None:
        assert service.refresh_prices(wallet_id) == []

    def test_refresh_feed_error_propagates(self, stores: StoreBundle) -> None:
        """A feed without fallback surfaces its error and leaves prices alone."""

        class Broken:
            source_name = "broken"

            def get_quotes(self, symbols):
                raise PriceFeedError("down", self.source_name)

        service = WalletService(stores.wallets, stores.transactions, Broken())
        wallet = stores.wallets.create_wallet("dave")
        service.buy(wallet.id, "BTC", "Bitcoin", 1, 100)

        with pytest.raises(PriceFeedError):
            service.refresh_prices(wallet.id)
        assert service.positions(wallet.id)[0].current_price == Decimal("100")

    def test_get_quotes(self, service: WalletService) -> None:
        quotes = service.get_quotes(["eth"])
        assert quotes["ETH"].price == Decimal("2500")


class TestHistory:
    """Tests for snapshots and history queries."""

    def test_record_and_query(self, service: WalletService, wallet_id: str) -> None:
        """Recorded snapshots are persisted and returned in the window."""
        service.buy(wallet_id, "BTC", "Bitcoin", 1, 100)
        service.record_snapshot(wallet_id, NOW - timedelta(days=40))
        service.record_snapshot(wallet_id, NOW - timedelta(days=5))
        service.record_snapshot(wallet_id, NOW)

        history = service.portfolio_history(wallet_id, days=30, now=NOW)

        assert [s.timestamp for s in history] == [NOW - timedelta(days=5), NOW]
        assert history[-1].total_value == Decimal("100")

    def test_empty_window_synthesizes_current_point(
        self, service: WalletService, wallet_id: str
    ) -> None:
        """With no snapshots a single current-state point is returned."""
        service.buy(wallet_id, "ETH", "Ethereum", 2, 2000)

        history = service.portfolio_history(wallet_id, days=7, now=NOW)

        assert len(history) == 1
        assert history[0].timestamp == NOW
        assert history[0].total_value == Decimal("4000")
        assert service.wallets.load_ledger(wallet_id).snapshots == []

    def test_retention_applied(self, stores: StoreBundle, static_feed: StaticPriceFeed) -> None:
        """The configured retention prunes old snapshots on append."""
        service = WalletService(
            stores.wallets, stores.transactions, static_feed, retention_days=10
        )
        wallet = stores.wallets.create_wallet("erin")
        service.record_snapshot(wallet.id, NOW - timedelta(days=20))
        service.record_snapshot(wallet.id, NOW)

        snapshots = stores.wallets.load_ledger(wallet.id).snapshots
        assert [s.timestamp for s in snapshots] == [NOW]


class TestConcurrency:
    """Concurrent orders against one wallet are serialized."""

    def test_parallel_buys_not_lost(self, service: WalletService, wallet_id: str) -> None:
        """Every buy lands even when issued from many threads."""
        errors: list[Exception] = []

        def worker() -> None:
            try:
                for _ in range(5):
                    service.buy(wallet_id, "BTC", "Bitcoin", 1, 100)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert service.positions(wallet_id)[0].amount == Decimal("20")
        assert service.transactions.count(wallet_id) == 20

    def test_lock_is_per_wallet(self, service: WalletService) -> None:
        assert service.wallet_lock("a") is service.wallet_lock("a")
        assert service.wallet_lock("a") is not service.wallet_lock("b")


class TestFromConfig:
    """Tests for wiring the service from settings."""

    def test_from_config(self, stores: StoreBundle, static_feed: StaticPriceFeed) -> None:
        config = AppConfig(fee_rate=Decimal("0.005"), history_retention_days=90)

        service = WalletService.from_config(config, stores, price_feed=static_feed)

        assert service.fee_rate == Decimal("0.005")
        assert service.retention_days == 90
        assert service.price_feed is static_feed

    def test_build_price_feed_uses_price_table(self, tmp_path) -> None:
        """A configured TOML table becomes the fallback."""
        table = tmp_path / "prices.toml"
        table.write_text('[XRP]\nname = "Ripple"\nprice = "0.52"\n')
        config = AppConfig(price_table_path=table)

        feed = build_price_feed(config)

        assert isinstance(feed, FallbackPriceFeed)
        assert feed.fallback.symbols == ["XRP"]
        assert feed.fallback.get_quotes(["xrp"])["XRP"] == PriceQuote(
            symbol="XRP", name="Ripple", price=Decimal("0.52")
        )


class TestSharedDatabaseFile:
    """Separate services on one database file, as with concurrent cwl processes."""

    @pytest.fixture
    def services(self, tmp_path, static_feed: StaticPriceFeed):
        path = tmp_path / "shared.db"
        first, second = create_sqlite_stores(path), create_sqlite_stores(path)
        return (
            WalletService(first.wallets, first.transactions, static_feed),
            WalletService(second.wallets, second.transactions, static_feed),
        )

    def test_buy_during_refresh_not_lost(self, tmp_path, static_feed: StaticPriceFeed) -> None:
        """A buy committed while another service is fetching quotes survives the refresh."""
        path = tmp_path / "shared.db"
        stores_b = create_sqlite_stores(path)
        buyer = WalletService(stores_b.wallets, stores_b.transactions, static_feed)
        wallet = stores_b.wallets.create_wallet("alice")
        buyer.buy(wallet.id, "BTC", "Bitcoin", 1, 10000)

        class BuyWhileFetching:
            source_name = "racing"

            def get_quotes(self, symbols):
                buyer.buy(wallet.id, "BTC", "Bitcoin", 1, 10000)
                return static_feed.get_quotes(symbols)

        stores_a = create_sqlite_stores(path)
        poller = WalletService(stores_a.wallets, stores_a.transactions, BuyWhileFetching())

        assert poller.refresh_prices(wallet.id) == ["BTC"]

        position = buyer.positions(wallet.id)[0]
        assert position.amount == Decimal("2")
        assert position.current_price == Decimal("12000")
        assert buyer.transactions.count(wallet.id) == 2

    def test_stale_ledger_save_rejected(self, services) -> None:
        """A ledger loaded before another service's buy cannot overwrite it."""
        first, second = services
        wallet = first.wallets.create_wallet("alice")
        stale = first.wallets.load_ledger(wallet.id)

        second.buy(wallet.id, "BTC", "Bitcoin", 1, 100)

        stale.apply_price_update({"BTC": 200})
        with pytest.raises(StaleLedgerError):
            first.wallets.save_ledger(wallet.id, stale)

        positions = first.positions(wallet.id)
        assert [(p.symbol, p.amount) for p in positions] == [("BTC", Decimal("1"))]
        assert first.transactions.count(wallet.id) == 1

    def test_parallel_buys_from_two_services(self, services) -> None:
        """Orders from two services interleave without losing updates."""
        first, second = services
        wallet = first.wallets.create_wallet("alice")
        errors: list[Exception] = []

        def worker(service: WalletService) -> None:
            try:
                for _ in range(5):
                    service.buy(wallet.id, "ETH", "Ethereum", 1, 2000)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [
            threading.Thread(target=worker, args=(svc,))
            for svc in (first, second, first, second)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert first.positions(wallet.id)[0].amount == Decimal("20")
        assert second.transactions.count(wallet.id) == 20
