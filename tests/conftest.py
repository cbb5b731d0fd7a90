"""Test configuration and fixtures for pytest."""

from decimal import Decimal

import pytest

from coinledger.db.factory import StoreBundle, create_sqlite_stores
from coinledger.ledger import PositionLedger
from coinledger.market.models import PriceQuote
from coinledger.market.static import StaticPriceFeed
from coinledger.service import WalletService


@pytest.fixture
def ledger() -> PositionLedger:
    """Empty ledger with the default retention window."""
    return PositionLedger()


@pytest.fixture
def stores() -> StoreBundle:
    """All stores on a shared in-memory database."""
    bundle = create_sqlite_stores(":memory:")
    yield bundle
    bundle.db.close()


@pytest.fixture
def static_feed() -> StaticPriceFeed:
    """Deterministic price feed."""
    return StaticPriceFeed(
        {
            "BTC": PriceQuote(symbol="BTC", name="Bitcoin", price=Decimal("12000")),
            "ETH": PriceQuote(symbol="ETH", name="Ethereum", price=Decimal("2500")),
        }
    )


@pytest.fixture
def service(stores: StoreBundle, static_feed: StaticPriceFeed) -> WalletService:
    """Service wired to in-memory stores and the static feed."""
    return WalletService(
        wallets=stores.wallets,
        transactions=stores.transactions,
        price_feed=static_feed,
    )


@pytest.fixture
def wallet_id(service: WalletService) -> str:
    """ID of a freshly created wallet."""
    return service.wallets.create_wallet("alice").id
