"""Price feed protocol definition.

Any class exposing ``source_name`` and ``get_quotes`` satisfies the
protocol without explicit inheritance.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from coinledger.market.models import PriceQuote


@runtime_checkable
class PriceFeed(Protocol):
    """Source of current asset prices.

    All prices use ``Decimal``.
    """

    @property
    def source_name(self) -> str:
        """Human-readable source identifier (e.g. ``'coingecko'``)."""
        ...

    def get_quotes(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """Return quotes keyed by uppercase symbol.

        Symbols the source does not know are omitted from the result.

        Raises:
            PriceFeedError: If the source cannot be reached or answers badly.
        """
        ...
