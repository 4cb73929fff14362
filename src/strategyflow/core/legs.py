"""Domain models for reconstructed strategies and their option legs.

A :class:`Strategy` owns an ordered list of :class:`Leg` objects. Legs are created by the
opening allocator, drawn down by the closing allocator through :meth:`Leg.consume`, and
stamped with status/shape by the lifecycle finalizer. Nothing is ever deleted; a run hands
back the final list of strategies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

ZERO = Decimal("0")


class StrategyStatus(str, Enum):
    OPEN = "OPEN"
    PARTIAL = "PARTIAL"
    CLOSED = "CLOSED"


class ShapeKind(str, Enum):
    SINGLE = "SINGLE"
    VERTICAL_CALL = "VERTICAL_CALL"
    VERTICAL_PUT = "VERTICAL_PUT"
    STRANGLE = "STRANGLE"
    IRON_CONDOR_OR_BUTTERFLY = "IRON_CONDOR_OR_BUTTERFLY"
    CUSTOM = "CUSTOM"


_SHAPE_NAMES = {
    ShapeKind.VERTICAL_CALL: "Vertical Call Spread",
    ShapeKind.VERTICAL_PUT: "Vertical Put Spread",
    ShapeKind.STRANGLE: "Strangle / Straddle",
    ShapeKind.IRON_CONDOR_OR_BUTTERFLY: "Iron Condor / Butterfly",
    ShapeKind.CUSTOM: "Custom",
}
ROLLED_SUFFIX = " (Rolled)"


@dataclass(frozen=True)
class StrategyShape:
    """Classification of a strategy's leg layout."""

    kind: ShapeKind
    direction: Optional[str] = None  # "Long" or "Short", single-leg shapes only
    option_type: Optional[str] = None  # "Call" or "Put", single-leg shapes only
    rolled: bool = False

    @property
    def base_name(self) -> str:
        if self.kind is ShapeKind.SINGLE:
            return f"{self.direction} {self.option_type}"
        return _SHAPE_NAMES[self.kind]

    @property
    def name(self) -> str:
        return self.base_name + (ROLLED_SUFFIX if self.rolled else "")


@dataclass(frozen=True)
class ClosedDetail:
    """One closing event recorded against a leg."""

    date: Optional[datetime]
    price: Decimal
    action: str
    total: Decimal
    fees: Decimal


@dataclass
class Leg:
    """A single option position opened inside a strategy."""

    contract_id: str
    option_type: str
    action: str
    quantity: Decimal
    open_price: Decimal
    strike: Decimal
    expiration: Optional[date]
    open_date: Optional[datetime]
    cost_basis: Decimal
    remaining_qty: Decimal
    closed_details: List[ClosedDetail] = field(default_factory=list)

    @property
    def is_long(self) -> bool:
        return "BUY" in self.action

    @property
    def is_short(self) -> bool:
        return "SELL" in self.action

    @property
    def is_open(self) -> bool:
        return self.remaining_qty > 0

    def consume(self, quantity: Decimal) -> None:
        """Draw down open quantity; never lets it go negative."""
        if quantity < 0 or quantity > self.remaining_qty:
            raise ValueError("consume quantity must be between 0 and the remaining quantity")
        self.remaining_qty -= quantity

    def record_close(self, detail: ClosedDetail) -> None:
        self.closed_details.append(detail)


@dataclass
class Strategy:
    """A group of legs representing one trading idea."""

    id: str
    underlying: str
    date_open: Optional[datetime]
    order_ids: List[str] = field(default_factory=list)
    legs: List[Leg] = field(default_factory=list)
    status: StrategyStatus = StrategyStatus.OPEN
    total_pl: Decimal = ZERO
    fees: Decimal = ZERO
    is_rolled: bool = False
    date_closed: Optional[datetime] = None
    shape: Optional[StrategyShape] = None

    @property
    def strategy_name(self) -> str:
        return self.shape.name if self.shape is not None else ""

    @property
    def opened_quantity(self) -> Decimal:
        return sum((leg.quantity for leg in self.legs), ZERO)

    @property
    def remaining_quantity(self) -> Decimal:
        return sum((leg.remaining_qty for leg in self.legs), ZERO)

    @property
    def active_legs(self) -> List[Leg]:
        return [leg for leg in self.legs if leg.is_open]

    def add_order_id(self, order_id: Optional[str]) -> None:
        if order_id and order_id not in self.order_ids:
            self.order_ids.append(order_id)


@dataclass(frozen=True)
class EngineResult:
    """Output of one reconstruction run."""

    initial_balance: Decimal
    strategies: List[Strategy]
