"""Portfolio value snapshots for historical charting."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through.

    Snapshot timestamps are always stored and compared as naive local time.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class SymbolSnapshot(BaseModel):
    """Point-in-time record of one position."""

    symbol: str = Field(..., description="Asset symbol")
    amount: Decimal = Field(..., description="Quantity held", ge=0)
    price: Decimal = Field(..., description="Price at snapshot time", ge=0)
    value: Decimal = Field(..., description="amount * price", ge=0)

    model_config = {"frozen": True}


class PortfolioSnapshot(BaseModel):
    """
    Timestamped capture of total and per-symbol portfolio value.

    Attributes:
        timestamp: When the snapshot was taken (naive local time)
        total_value: Sum of position values at that time
        positions: Per-symbol breakdown
    """

    timestamp: datetime = Field(..., description="Snapshot timestamp")
    total_value: Decimal = Field(..., description="Total portfolio value", ge=0)
    positions: list[SymbolSnapshot] = Field(
        default_factory=list,
        description="Per-symbol breakdown",
    )

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return to_local_naive(v)

    def __str__(self) -> str:
        return (
            f"Snapshot({self.timestamp:%Y-%m-%d %H:%M}: ${self.total_value}, "
            f"{len(self.positions)} positions)"
        )
