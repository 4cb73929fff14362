"""Aggregate statistics and breakdowns over reconstructed strategies."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Sequence

from ..core.legs import ZERO, Strategy, StrategyStatus
from .capital import estimate_capital, is_zero_dte

View = Literal["all", "zero-dte"]
StatusFilter = Literal["ALL", "OPEN", "CLOSED"]

ZERO_DTE_VIEW = "zero-dte"
ZERO_DTE_INDEXES = {"SPX", "RUT", "XSP"}
HUNDRED = Decimal("100")
_SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class PerformanceStats:
    """Headline performance figures for a set of strategies."""

    total_pl: Decimal
    closed_pl: Decimal
    total_fees: Decimal
    closed_fees: Decimal
    total_pl_before_fees: Decimal
    closed_pl_before_fees: Decimal
    win_count: int
    loss_count: int
    win_rate: Decimal
    open_count: int
    avg_duration: Decimal  # days, rounded up per strategy
    avg_roc: Decimal  # percent
    avg_capital: Decimal
    avg_win: Decimal
    avg_loss: Decimal
    zero_dte_pl: Decimal
    starting_balance: Decimal
    current_balance: Decimal
    return_percentage: Decimal

    @property
    def total_pl_after_fees(self) -> Decimal:
        return self.total_pl

    @property
    def closed_pl_after_fees(self) -> Decimal:
        return self.closed_pl


@dataclass
class PnlBreakdown:
    """P&L bucket for one symbol or one strategy type."""

    label: str
    pl_before_fees: Decimal = ZERO
    total_fees: Decimal = ZERO
    pl_after_fees: Decimal = ZERO
    strategy_count: int = 0
    closed_strategies: int = 0
    winning_strategies: int = 0
    strategies: List[Strategy] = field(default_factory=list, repr=False)

    def add_closed(self, strategy: Strategy) -> None:
        fees = abs(strategy.fees)
        self.pl_before_fees += strategy.total_pl + fees
        self.total_fees += fees
        self.pl_after_fees += strategy.total_pl
        self.closed_strategies += 1
        if strategy.total_pl > 0:
            self.winning_strategies += 1


def _is_closed(strategy: Strategy) -> bool:
    return strategy.status is StrategyStatus.CLOSED


def _average(total: Decimal, count: int) -> Decimal:
    return total / count if count else ZERO


def _duration_days(strategy: Strategy) -> Optional[int]:
    if strategy.date_open is None or strategy.date_closed is None:
        return None
    elapsed = abs((strategy.date_closed - strategy.date_open).total_seconds())
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def get_context_data(strategies: Sequence[Strategy], view: str = "all") -> List[Strategy]:
    """Restrict to same-day index trades for the ``zero-dte`` view; otherwise pass through."""
    if view == ZERO_DTE_VIEW:
        return [
            strategy
            for strategy in strategies
            if strategy.underlying in ZERO_DTE_INDEXES and is_zero_dte(strategy)
        ]
    return list(strategies)


def compute_stats(
    strategies: Sequence[Strategy], view: str = "all", initial_balance: Decimal = ZERO
) -> PerformanceStats:
    closed = [strategy for strategy in strategies if _is_closed(strategy)]
    total_pl = sum((strategy.total_pl for strategy in strategies), ZERO)
    closed_pl = sum((strategy.total_pl for strategy in closed), ZERO)
    total_fees = sum((abs(strategy.fees) for strategy in strategies), ZERO)
    closed_fees = sum((abs(strategy.fees) for strategy in closed), ZERO)

    winners = [strategy for strategy in closed if strategy.total_pl > 0]
    losers = [strategy for strategy in closed if strategy.total_pl <= 0]
    open_count = sum(1 for strategy in strategies if not _is_closed(strategy))

    total_duration = 0
    duration_count = 0
    zero_dte_pl = ZERO
    for strategy in closed:
        same_day = is_zero_dte(strategy)
        if same_day:
            zero_dte_pl += strategy.total_pl
        days = _duration_days(strategy)
        if days is not None and (view == ZERO_DTE_VIEW or not same_day):
            total_duration += days
            duration_count += 1

    total_roc = ZERO
    roc_count = 0
    total_capital = ZERO
    capital_count = 0
    for strategy in strategies:
        capital = estimate_capital(strategy)
        if capital <= 0:
            continue
        total_capital += capital
        capital_count += 1
        if _is_closed(strategy):
            total_roc += strategy.total_pl / capital * HUNDRED
            roc_count += 1

    win_total = sum((strategy.total_pl for strategy in winners), ZERO)
    loss_total = sum((strategy.total_pl for strategy in losers), ZERO)
    current_balance = initial_balance + closed_pl
    return_percentage = closed_pl / initial_balance * HUNDRED if initial_balance > 0 else ZERO

    return PerformanceStats(
        total_pl=total_pl,
        closed_pl=closed_pl,
        total_fees=total_fees,
        closed_fees=closed_fees,
        total_pl_before_fees=total_pl + total_fees,
        closed_pl_before_fees=closed_pl + closed_fees,
        win_count=len(winners),
        loss_count=len(losers),
        win_rate=_average(Decimal(len(winners)) * HUNDRED, len(closed)),
        open_count=open_count,
        avg_duration=_average(Decimal(total_duration), duration_count),
        avg_roc=_average(total_roc, roc_count),
        avg_capital=_average(total_capital, capital_count),
        avg_win=_average(win_total, len(winners)),
        avg_loss=abs(_average(loss_total, len(losers))),
        zero_dte_pl=zero_dte_pl,
        starting_balance=initial_balance,
        current_balance=current_balance,
        return_percentage=return_percentage,
    )


def filter_strategies(
    strategies: Sequence[Strategy], status_filter: str = "ALL", symbol_filter: str = ""
) -> List[Strategy]:
    """Filter by status (OPEN includes PARTIAL) and case-insensitive underlying substring."""
    filtered = list(strategies)
    status = status_filter.upper()
    if status == "OPEN":
        filtered = [strategy for strategy in filtered if not _is_closed(strategy)]
    elif status == "CLOSED":
        filtered = [strategy for strategy in filtered if _is_closed(strategy)]

    term = (symbol_filter or "").strip().upper()
    if term:
        filtered = [
            strategy
            for strategy in filtered
            if strategy.underlying and term in strategy.underlying.upper()
        ]
    return filtered


def pl_per_symbol(strategies: Sequence[Strategy]) -> List[PnlBreakdown]:
    """Per-underlying totals over closed strategies, best first."""
    buckets: Dict[str, PnlBreakdown] = {}
    for strategy in strategies:
        if not strategy.underlying:
            continue
        bucket = buckets.setdefault(strategy.underlying, PnlBreakdown(label=strategy.underlying))
        bucket.strategy_count += 1
        bucket.strategies.append(strategy)
        if _is_closed(strategy):
            bucket.add_closed(strategy)

    populated = [bucket for bucket in buckets.values() if bucket.closed_strategies > 0]
    return sorted(populated, key=lambda bucket: bucket.pl_after_fees, reverse=True)


def pl_per_strategy_type(strategies: Sequence[Strategy]) -> List[PnlBreakdown]:
    """Per-shape totals over closed strategies; rolled variants share their base shape."""
    buckets: Dict[str, PnlBreakdown] = {}
    for strategy in strategies:
        if not _is_closed(strategy) or strategy.shape is None:
            continue
        label = strategy.shape.base_name
        bucket = buckets.setdefault(label, PnlBreakdown(label=label))
        bucket.strategy_count += 1
        bucket.strategies.append(strategy)
        bucket.add_closed(strategy)

    return sorted(buckets.values(), key=lambda bucket: bucket.pl_after_fees, reverse=True)
