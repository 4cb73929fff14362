"""
Core record model for strategy reconstruction.

This module defines the Pydantic model for a normalized brokerage transaction. Rows are
validated into :class:`TransactionRecord` once, at the ingestion boundary, and the engine
never re-reads broker column names after that point.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INVALID_DATE = "INVALID_DATE"

LIFECYCLE_SUBTYPES = ("Expiration", "Assignment", "Exercise")
CASH_SETTLED_SUBTYPE = "Cash Settled"
CLOSE_SYSTEM_ACTION = "CLOSE_SYSTEM"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_strike(value: Decimal) -> str:
    """Render a strike in plain notation without trailing zeros (``102.5``, ``100``)."""
    if value == value.to_integral_value():
        return format(value.quantize(Decimal("1")), "f")
    return format(value.normalize(), "f")


def build_contract_id(
    underlying: str, expiration: Optional[date], strike: Decimal, option_type: str
) -> str:
    """Identity key for a fungible option contract."""
    expiration_text = expiration.isoformat() if expiration is not None else INVALID_DATE
    return f"{underlying}-{expiration_text}-{format_strike(strike)}-{option_type}"


class TransactionRecord(BaseModel):
    """Represents a single normalized brokerage transaction."""

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[datetime] = Field(None, description="Execution time; None when unparseable")
    action: str = Field("", description="Normalized action, e.g. 'SELL_TO_OPEN'")
    sub_type: str = Field("", description="Broker sub type, e.g. 'Assignment'")
    symbol: str = Field("", description="Broker instrument symbol")
    underlying: str = Field("", description="Underlying symbol (e.g., 'SPY')")
    strike: Decimal = Field(Decimal("0"), description="Strike price")
    option_type: str = Field("", description="'CALL' or 'PUT'")
    expiration: Optional[date] = Field(None, description="Expiration date")
    quantity: Decimal = Field(Decimal("0"), description="Contract quantity; sign is ignored")
    price: Decimal = Field(Decimal("0"), description="Average price per contract")
    value: Decimal = Field(Decimal("0"), description="Gross cash value")
    total: Decimal = Field(Decimal("0"), description="Net signed cash effect")
    fees: Decimal = Field(Decimal("0"), description="Regulatory and clearing fees")
    commissions: Decimal = Field(Decimal("0"), description="Commissions")
    order_id: Optional[str] = Field(None, description="Broker order number")

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, v):
        return to_naive_utc(v)

    @field_validator("action", "option_type")
    @classmethod
    def _upper(cls, v):
        return (v or "").strip().upper()

    @field_validator("sub_type", "symbol", "underlying")
    @classmethod
    def _strip(cls, v):
        return (v or "").strip()

    @field_validator("order_id")
    @classmethod
    def _blank_order_id(cls, v):
        if v is None:
            return None
        stripped = str(v).strip()
        return stripped or None

    @property
    def contract_id(self) -> str:
        return build_contract_id(self.underlying, self.expiration, self.strike, self.option_type)

    @property
    def close_quantity(self) -> Decimal:
        """Quantity magnitude; the engine never relies on the sign."""
        return abs(self.quantity)

    @property
    def total_fees(self) -> Decimal:
        return self.fees + self.commissions

    @property
    def is_opening(self) -> bool:
        return "OPEN" in self.action

    @property
    def is_lifecycle(self) -> bool:
        """Expiration, assignment or exercise rows."""
        return any(marker in self.sub_type for marker in LIFECYCLE_SUBTYPES)

    @property
    def is_cash_settled(self) -> bool:
        return CASH_SETTLED_SUBTYPE in self.sub_type

    @property
    def is_closing(self) -> bool:
        return "CLOSE" in self.action or self.is_lifecycle or self.is_cash_settled

    @property
    def close_label(self) -> str:
        """Label recorded against a leg when this record closes it."""
        if "Expiration" in self.sub_type:
            return "EXPIRED"
        if "Assignment" in self.sub_type:
            return "ASSIGNED"
        if "Exercise" in self.sub_type:
            return "EXERCISED"
        if self.is_cash_settled:
            return "CASH SETTLED"
        return self.action
