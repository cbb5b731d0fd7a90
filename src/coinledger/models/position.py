"""Position and portfolio summary models."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def normalize_symbol(symbol: str) -> str:
    """Uppercase and strip an asset symbol."""
    return symbol.strip().upper()


class Position(BaseModel):
    """
    A wallet's holding in a single asset.

    Only the inputs are stored. Value and profit/loss are derived on read
    so they can never go stale after a mutation.

    Attributes:
        symbol: Uppercase asset identifier
        name: Display name
        amount: Quantity held
        average_cost: Weighted-average unit cost of the held quantity
        current_price: Last known market unit price
    """

    symbol: str = Field(..., description="Asset symbol", min_length=1)
    name: str = Field(default="", description="Display name")
    amount: Decimal = Field(..., description="Quantity held", ge=0)
    average_cost: Decimal = Field(..., description="Average cost per unit", ge=0)
    current_price: Decimal = Field(..., description="Last market price", ge=0)

    model_config = {"validate_assignment": True}

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return normalize_symbol(value)

    @property
    def value(self) -> Decimal:
        """Market value at the current price."""
        return self.amount * self.current_price

    @property
    def cost_basis(self) -> Decimal:
        """Total cost basis for this position."""
        return self.amount * self.average_cost

    @property
    def profit_loss(self) -> Decimal:
        """Unrealized profit/loss at the current price."""
        return self.value - self.cost_basis

    @property
    def profit_loss_pct(self) -> Decimal:
        """Unrealized P&L as a percentage of average cost."""
        if self.average_cost <= ZERO:
            return ZERO
        return (self.current_price - self.average_cost) / self.average_cost * HUNDRED

    def __str__(self) -> str:
        return (
            f"Position({self.symbol}: {self.amount} @ ${self.average_cost} avg, "
            f"last ${self.current_price})"
        )


class PortfolioSummary(BaseModel):
    """Aggregate metrics across every position in a ledger."""

    total_value: Decimal = Field(default=ZERO, description="Sum of position values")
    total_invested: Decimal = Field(default=ZERO, description="Sum of position cost bases")
    total_profit_loss: Decimal = Field(default=ZERO, description="Value minus invested")
    total_profit_loss_pct: Decimal = Field(default=ZERO, description="P&L as % of invested")

    model_config = {"frozen": True}

    @classmethod
    def from_positions(cls, positions: list[Position]) -> "PortfolioSummary":
        """Compute the summary from a set of positions."""
        total_value = sum((p.value for p in positions), ZERO)
        total_invested = sum((p.cost_basis for p in positions), ZERO)
        total_profit_loss = total_value - total_invested
        if total_invested > ZERO:
            pct = total_profit_loss / total_invested * HUNDRED
        else:
            pct = ZERO
        return cls(
            total_value=total_value,
            total_invested=total_invested,
            total_profit_loss=total_profit_loss,
            total_profit_loss_pct=pct,
        )
