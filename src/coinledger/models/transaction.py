"""Transaction records model."""

from __future__ import annotations

import secrets
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

DEFAULT_FEE_RATE = Decimal("0.01")


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def generate_transaction_hash(side: str, symbol: str) -> str:
    """Build a mock ``0x``-prefixed transaction hash.

    Layout: side prefix, first three symbol chars, base36 millis, random tail.
    """
    millis = int(time.time() * 1000)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    stamp = ""
    while millis:
        millis, rem = divmod(millis, 36)
        stamp = digits[rem] + stamp
    return f"0x{side[:2]}{symbol[:3]}{stamp}{secrets.token_hex(4)}".lower()


class Transaction(BaseModel):
    """
    Record of a buy or sell against a wallet.

    Fees are charged on the fiat notional and recorded here only; they do
    not feed into the position's average cost.

    Attributes:
        id: Unique transaction identifier
        wallet_id: Wallet the transaction belongs to
        type: "buy" or "sell"
        symbol: Asset symbol
        name: Asset display name
        amount: Asset quantity
        price: Unit price
        fiat_currency: Settlement currency code
        fiat_amount: Fiat notional (amount * price)
        fee_amount: Fee charged in fiat
        status: Lifecycle status
        transaction_hash: Mock on-chain hash
        notes: Optional free-text notes
        created_at: When the transaction was recorded
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique transaction ID")
    wallet_id: str = Field(..., description="Owning wallet ID")
    type: Literal["buy", "sell"] = Field(..., description="Transaction side")
    symbol: str = Field(..., description="Asset symbol")
    name: str = Field(default="", description="Asset display name")
    amount: Decimal = Field(..., description="Asset quantity", ge=0)
    price: Decimal = Field(..., description="Unit price", ge=0)
    fiat_currency: str = Field(default="USD", description="Fiat currency code")
    fiat_amount: Decimal = Field(..., description="Fiat notional", ge=0)
    fee_amount: Decimal = Field(default=Decimal("0"), description="Fee in fiat", ge=0)
    status: TransactionStatus = Field(default=TransactionStatus.PENDING, description="Status")
    transaction_hash: Optional[str] = Field(default=None, description="Mock transaction hash")
    notes: Optional[str] = Field(default=None, description="Notes", max_length=500)
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    @property
    def total_value(self) -> Decimal:
        """Fiat notional including fees."""
        return self.fiat_amount + self.fee_amount

    def complete(self) -> None:
        """Mark the transaction completed and stamp a hash if missing."""
        self.status = TransactionStatus.COMPLETED
        if self.transaction_hash is None:
            self.transaction_hash = generate_transaction_hash(self.type, self.symbol)

    def fail(self, reason: Optional[str] = None) -> None:
        """Mark the transaction failed."""
        self.status = TransactionStatus.FAILED
        self.notes = reason or "Transaction failed"

    def __str__(self) -> str:
        return (
            f"Transaction({self.type.upper()} {self.amount} {self.symbol} "
            f"@ ${self.price} = ${self.fiat_amount} fee ${self.fee_amount} [{self.status.value}])"
        )

    @classmethod
    def create(
        cls,
        wallet_id: str,
        side: Literal["buy", "sell"],
        symbol: str,
        name: str,
        amount: Decimal,
        price: Decimal,
        fee_rate: Decimal = DEFAULT_FEE_RATE,
        fiat_currency: str = "USD",
        notes: Optional[str] = None,
    ) -> Transaction:
        """
        Factory method to build a transaction from an order.

        Calculates the fiat notional and the flat-rate fee.
        """
        fiat_amount = amount * price
        return cls(
            wallet_id=wallet_id,
            type=side,
            symbol=symbol,
            name=name,
            amount=amount,
            price=price,
            fiat_currency=fiat_currency,
            fiat_amount=fiat_amount,
            fee_amount=fiat_amount * fee_rate,
            notes=notes,
        )


class TypeStats(BaseModel):
    """Totals for one transaction type."""

    type: str
    count: int = 0
    total_amount: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")


class TransactionStats(BaseModel):
    """Aggregate transaction statistics for a wallet."""

    total_transactions: int = 0
    total_volume: Decimal = Decimal("0")
    total_fees: Decimal = Decimal("0")
    by_type: list[TypeStats] = Field(default_factory=list)
