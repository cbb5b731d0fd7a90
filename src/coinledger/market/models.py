"""Market data models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class PriceQuote(BaseModel):
    """Latest quote for one asset."""

    model_config = {"frozen": True}

    symbol: str = Field(description="Asset symbol")
    name: str = Field(default="", description="Asset display name")
    price: Decimal = Field(description="Last price", ge=0)
    change_24h_pct: Optional[float] = Field(default=None, description="24h change (%)")
    market_cap: Optional[Decimal] = Field(default=None, description="Market capitalisation")
    volume_24h: Optional[Decimal] = Field(default=None, description="24h traded volume")


class PriceFeedError(Exception):
    """Raised when a price source cannot produce quotes."""

    def __init__(self, message: str, source: str) -> None:
        self.message: str = message
        self.source: str = source
        super().__init__(f"[{source}] {message}")
