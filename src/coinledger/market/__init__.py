"""Market data sources: live CoinGecko quotes with a static fallback."""

from coinledger.market.coingecko import COINGECKO_IDS, CoinGeckoPriceFeed
from coinledger.market.fallback import FallbackPriceFeed, quotes_to_prices
from coinledger.market.models import PriceFeedError, PriceQuote
from coinledger.market.protocols import PriceFeed
from coinledger.market.static import DEFAULT_PRICE_TABLE, StaticPriceFeed

__all__ = [
    "COINGECKO_IDS",
    "CoinGeckoPriceFeed",
    "DEFAULT_PRICE_TABLE",
    "FallbackPriceFeed",
    "PriceFeed",
    "PriceFeedError",
    "PriceQuote",
    "StaticPriceFeed",
    "quotes_to_prices",
]
