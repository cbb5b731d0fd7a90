"""Static price table used when live market data is unavailable."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional

from coinledger.market.models import PriceQuote
from coinledger.models.position import normalize_symbol

DEFAULT_PRICE_TABLE: dict[str, PriceQuote] = {
    "BTC": PriceQuote(
        symbol="BTC",
        name="Bitcoin",
        price=Decimal("43250.75"),
        change_24h_pct=4.47,
        market_cap=Decimal("845123456789"),
        volume_24h=Decimal("28543123456"),
    ),
    "ETH": PriceQuote(
        symbol="ETH",
        name="Ethereum",
        price=Decimal("2678.45"),
        change_24h_pct=-5.14,
        market_cap=Decimal("321567890123"),
        volume_24h=Decimal("15432109876"),
    ),
    "ADA": PriceQuote(
        symbol="ADA",
        name="Cardano",
        price=Decimal("0.4723"),
        change_24h_pct=5.22,
        market_cap=Decimal("16543210987"),
        volume_24h=Decimal("876543210"),
    ),
    "SOL": PriceQuote(
        symbol="SOL",
        name="Solana",
        price=Decimal("98.76"),
        change_24h_pct=8.13,
        market_cap=Decimal("43210987654"),
        volume_24h=Decimal("2109876543"),
    ),
    "MATIC": PriceQuote(
        symbol="MATIC",
        name="Polygon",
        price=Decimal("0.8945"),
        change_24h_pct=-2.55,
        market_cap=Decimal("8765432109"),
        volume_24h=Decimal("543210987"),
    ),
    "DOT": PriceQuote(
        symbol="DOT",
        name="Polkadot",
        price=Decimal("7.23"),
        change_24h_pct=4.93,
        market_cap=Decimal("9876543210"),
        volume_24h=Decimal("654321098"),
    ),
}


class StaticPriceFeed:
    """Serves quotes from a fixed in-memory table. Never fails."""

    def __init__(self, table: Optional[Mapping[str, PriceQuote]] = None) -> None:
        source = DEFAULT_PRICE_TABLE if table is None else table
        self._table = {normalize_symbol(sym): quote for sym, quote in source.items()}

    @property
    def source_name(self) -> str:
        return "static"

    @property
    def symbols(self) -> list[str]:
        """Symbols present in the table."""
        return list(self._table)

    def get_quotes(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """Return table entries for the requested symbols."""
        quotes: dict[str, PriceQuote] = {}
        for symbol in symbols:
            sym = normalize_symbol(symbol)
            if sym in self._table:
                quotes[sym] = self._table[sym]
        return quotes
