"""Wallet record model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class FiatCurrency(str, Enum):
    """Supported settlement currencies."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"
    INR = "INR"


class WalletRecord(BaseModel):
    """Persisted wallet metadata. Positions and history live in the ledger."""

    id: str = Field(default_factory=lambda: str(uuid4())[:8], description="Unique wallet ID")
    owner: str = Field(..., description="Owner identifier", min_length=1)
    fiat_currency: FiatCurrency = Field(default=FiatCurrency.USD, description="Settlement currency")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.now, description="Last update timestamp")
