"""CoinGecko price feed."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from coinledger.market.models import PriceFeedError, PriceQuote
from coinledger.models.position import normalize_symbol

logger = logging.getLogger(__name__)

# Symbol -> CoinGecko coin id
COINGECKO_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "ADA": "cardano",
    "SOL": "solana",
    "MATIC": "matic-network",
    "DOT": "polkadot",
}

COIN_NAMES: dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "ADA": "Cardano",
    "SOL": "Solana",
    "MATIC": "Polygon",
    "DOT": "Polkadot",
}


def _optional_decimal(value: Any) -> Optional[Decimal]:
    """Parse a finite Decimal; None for missing, NaN, infinite or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


class CoinGeckoPriceFeed:
    """
    Fetches spot prices from the CoinGecko ``/simple/price`` endpoint.

    Attributes:
        vs_currency: Quote currency (lowercase, e.g. ``"usd"``)
    """

    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        vs_currency: str = "usd",
        coin_ids: Optional[dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the feed.

        Args:
            base_url: API root URL
            api_key: Optional demo API key sent as ``x-cg-demo-api-key``
            timeout: Request timeout in seconds
            vs_currency: Quote currency
            coin_ids: Override of the symbol -> coin id mapping
            transport: Optional httpx transport (used in tests)
        """
        headers = {"x-cg-demo-api-key": api_key} if api_key else {}
        self.vs_currency = vs_currency.lower()
        self._coin_ids = dict(coin_ids or COINGECKO_IDS)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @property
    def source_name(self) -> str:
        return "coingecko"

    def get_quotes(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """Fetch quotes for ``symbols``.

        Raises:
            PriceFeedError: On transport failure, non-2xx status or bad payload
        """
        id_to_symbol: dict[str, str] = {}
        for symbol in symbols:
            sym = normalize_symbol(symbol)
            coin_id = self._coin_ids.get(sym)
            if coin_id is None:
                logger.debug(f"No CoinGecko id for {sym}, skipping")
                continue
            id_to_symbol[coin_id] = sym
        if not id_to_symbol:
            return {}

        params = {
            "ids": ",".join(id_to_symbol),
            "vs_currencies": self.vs_currency,
            "include_24hr_change": "true",
            "include_market_cap": "true",
            "include_24hr_vol": "true",
        }
        try:
            resp = self._client.get("/simple/price", params=params)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as e:
            raise PriceFeedError(f"Request failed: {e}", self.source_name) from e
        except ValueError as e:
            raise PriceFeedError(f"Invalid JSON response: {e}", self.source_name) from e

        if not isinstance(payload, dict):
            raise PriceFeedError("Unexpected response shape", self.source_name)

        cur = self.vs_currency
        quotes: dict[str, PriceQuote] = {}
        for coin_id, data in payload.items():
            sym = id_to_symbol.get(coin_id)
            if sym is None or not isinstance(data, dict):
                continue
            price = _optional_decimal(data.get(cur))
            if price is None or price < 0:
                continue
            quotes[sym] = PriceQuote(
                symbol=sym,
                name=COIN_NAMES.get(sym, ""),
                price=price,
                change_24h_pct=_optional_float(data.get(f"{cur}_24h_change")),
                market_cap=_optional_decimal(data.get(f"{cur}_market_cap")),
                volume_24h=_optional_decimal(data.get(f"{cur}_24h_vol")),
            )
        logger.debug(f"CoinGecko returned {len(quotes)} quotes")
        return quotes

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> CoinGeckoPriceFeed:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
