"""Price feed that degrades to a static table when the primary fails."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Literal, Optional

from coinledger.market.models import PriceFeedError, PriceQuote
from coinledger.market.protocols import PriceFeed
from coinledger.market.static import StaticPriceFeed

logger = logging.getLogger(__name__)

QuoteSource = Literal["live", "fallback"]


class FallbackPriceFeed:
    """
    Wraps a live feed and answers from a static table on failure.

    Attributes:
        last_source: Where the most recent quotes came from
    """

    def __init__(self, primary: PriceFeed, fallback: Optional[StaticPriceFeed] = None) -> None:
        self.primary = primary
        self.fallback = fallback or StaticPriceFeed()
        self.last_source: Optional[QuoteSource] = None

    @property
    def source_name(self) -> str:
        return f"{self.primary.source_name}+{self.fallback.source_name}"

    def get_quotes(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """Fetch from the primary feed, falling back to the static table."""
        requested = list(symbols)
        try:
            quotes = self.primary.get_quotes(requested)
        except PriceFeedError as e:
            logger.warning(f"Primary price feed failed, using fallback data: {e}")
            self.last_source = "fallback"
            return self.fallback.get_quotes(requested)
        self.last_source = "live"
        return quotes


def quotes_to_prices(quotes: dict[str, PriceQuote]) -> dict[str, Decimal]:
    """Reduce quotes to a ``symbol -> price`` mapping for the ledger."""
    return {symbol: quote.price for symbol, quote in quotes.items()}
