"""Lifecycle finalization: auto-expiry, status, close date and shape classification."""

from __future__ import annotations

from datetime import datetime, time
from typing import Iterable, List, Optional, Sequence

from ..core.legs import (
    ZERO,
    ClosedDetail,
    Leg,
    ShapeKind,
    Strategy,
    StrategyShape,
    StrategyStatus,
)
from ..core.models import TransactionRecord

AUTO_EXPIRED_LABEL = "EXPIRED (AUTO)"
_END_OF_DAY = time(23, 59, 59)


def latest_timestamp(records: Iterable[TransactionRecord]) -> Optional[datetime]:
    """Maximum valid timestamp across the batch, or ``None`` if there is none."""
    stamps = [record.timestamp for record in records if record.timestamp is not None]
    return max(stamps) if stamps else None


def auto_expire_leg(leg: Leg, as_of: Optional[datetime]) -> bool:
    """
    Close out open quantity on a leg whose expiration has passed.

    A leg expires automatically when the dataset runs past the end of its expiration day
    without an observed closing record. The synthetic close carries no cash, so P&L is
    unaffected. Returns whether the leg was closed.
    """
    if as_of is None or leg.expiration is None or not leg.is_open:
        return False
    cutoff = datetime.combine(leg.expiration, _END_OF_DAY)
    if as_of <= cutoff:
        return False
    leg.consume(leg.remaining_qty)
    leg.record_close(
        ClosedDetail(
            date=datetime.combine(leg.expiration, time.min),
            price=ZERO,
            action=AUTO_EXPIRED_LABEL,
            total=ZERO,
            fees=ZERO,
        )
    )
    return True


def resolve_status(strategy: Strategy) -> StrategyStatus:
    remaining = strategy.remaining_quantity
    if remaining == 0:
        return StrategyStatus.CLOSED
    if remaining < strategy.opened_quantity:
        return StrategyStatus.PARTIAL
    return StrategyStatus.OPEN


def resolve_date_closed(strategy: Strategy) -> Optional[datetime]:
    dates = [
        detail.date
        for leg in strategy.legs
        for detail in leg.closed_details
        if detail.date is not None
    ]
    return max(dates) if dates else None


def _option_word(option_type: str) -> str:
    return "Call" if option_type == "CALL" else "Put"


def classify_shape(legs: Sequence[Leg], *, rolled: bool = False) -> StrategyShape:
    """Map a leg layout to its shape; callers pass active legs when any are open."""
    leg_count = len(legs)
    call_count = sum(1 for leg in legs if leg.option_type == "CALL")
    put_count = sum(1 for leg in legs if leg.option_type == "PUT")

    if leg_count == 1:
        leg = legs[0]
        direction = "Long" if leg.is_long else "Short"
        return StrategyShape(
            kind=ShapeKind.SINGLE,
            direction=direction,
            option_type=_option_word(leg.option_type),
            rolled=rolled,
        )
    if leg_count == 2:
        if call_count == 2:
            kind = ShapeKind.VERTICAL_CALL
        elif put_count == 2:
            kind = ShapeKind.VERTICAL_PUT
        else:
            kind = ShapeKind.STRANGLE
        return StrategyShape(kind=kind, rolled=rolled)
    if leg_count == 4:
        return StrategyShape(kind=ShapeKind.IRON_CONDOR_OR_BUTTERFLY, rolled=rolled)
    return StrategyShape(kind=ShapeKind.CUSTOM, rolled=rolled)


def finalize_strategy(strategy: Strategy, as_of: Optional[datetime]) -> Strategy:
    for leg in strategy.legs:
        auto_expire_leg(leg, as_of)

    strategy.status = resolve_status(strategy)
    strategy.date_closed = (
        resolve_date_closed(strategy) if strategy.status is StrategyStatus.CLOSED else None
    )
    relevant = strategy.active_legs or strategy.legs
    strategy.shape = classify_shape(relevant, rolled=strategy.is_rolled)
    return strategy


def _date_open_key(strategy: Strategy) -> datetime:
    return strategy.date_open or datetime.min


def finalize_strategies(
    strategies: Iterable[Strategy], as_of: Optional[datetime]
) -> List[Strategy]:
    """Finalize every strategy and return them newest-opened first."""
    finalized = [finalize_strategy(strategy, as_of) for strategy in strategies]
    return sorted(finalized, key=_date_open_key, reverse=True)

