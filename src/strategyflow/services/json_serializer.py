"""JSON serialization utilities for reconstructed strategies."""

from __future__ import annotations

from dataclasses import fields
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from ..core.legs import ClosedDetail, EngineResult, Leg, Strategy
from .analytics import PerformanceStats, PnlBreakdown
from .capital import estimate_capital, is_zero_dte


def serialize_decimal(value: Any) -> Any:
    """Serialize Decimal values to JSON-compatible format."""
    if isinstance(value, Decimal):
        normalized = value.normalize()
        return format(normalized, "f")
    return value


def serialize_datetime(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def serialize_closed_detail(detail: ClosedDetail) -> Dict[str, Any]:
    return {
        "date": serialize_datetime(detail.date),
        "price": serialize_decimal(detail.price),
        "action": detail.action,
        "total": serialize_decimal(detail.total),
        "fees": serialize_decimal(detail.fees),
    }


def serialize_leg(leg: Leg) -> Dict[str, Any]:
    """Serialize a strategy leg including its closing history."""
    return {
        "contract_id": leg.contract_id,
        "type": leg.option_type,
        "action": leg.action,
        "quantity": serialize_decimal(leg.quantity),
        "remaining_qty": serialize_decimal(leg.remaining_qty),
        "open_price": serialize_decimal(leg.open_price),
        "strike": serialize_decimal(leg.strike),
        "expiration": serialize_datetime(leg.expiration),
        "open_date": serialize_datetime(leg.open_date),
        "cost_basis": serialize_decimal(leg.cost_basis),
        "closed_details": [serialize_closed_detail(detail) for detail in leg.closed_details],
    }


def serialize_strategy(strategy: Strategy) -> Dict[str, Any]:
    """Serialize a strategy with its derived capital estimate and 0DTE flag."""
    return {
        "id": strategy.id,
        "order_ids": list(strategy.order_ids),
        "underlying": strategy.underlying,
        "strategy_name": strategy.strategy_name,
        "status": strategy.status.value,
        "date_open": serialize_datetime(strategy.date_open),
        "date_closed": serialize_datetime(strategy.date_closed),
        "total_pl": serialize_decimal(strategy.total_pl),
        "fees": serialize_decimal(strategy.fees),
        "is_rolled": strategy.is_rolled,
        "capital": serialize_decimal(estimate_capital(strategy)),
        "is_zero_dte": is_zero_dte(strategy),
        "legs": [serialize_leg(leg) for leg in strategy.legs],
    }


def serialize_stats(stats: PerformanceStats) -> Dict[str, Any]:
    payload = {item.name: serialize_decimal(getattr(stats, item.name)) for item in fields(stats)}
    payload["total_pl_after_fees"] = serialize_decimal(stats.total_pl_after_fees)
    payload["closed_pl_after_fees"] = serialize_decimal(stats.closed_pl_after_fees)
    return payload


def serialize_breakdown(breakdown: PnlBreakdown) -> Dict[str, Any]:
    return {
        "label": breakdown.label,
        "pl_before_fees": serialize_decimal(breakdown.pl_before_fees),
        "total_fees": serialize_decimal(breakdown.total_fees),
        "pl_after_fees": serialize_decimal(breakdown.pl_after_fees),
        "strategy_count": breakdown.strategy_count,
        "closed_strategies": breakdown.closed_strategies,
        "winning_strategies": breakdown.winning_strategies,
    }


def build_result_payload(
    result: EngineResult,
    *,
    strategies: Optional[Sequence[Strategy]] = None,
    stats: Optional[PerformanceStats] = None,
) -> Dict[str, Any]:
    """Build the complete JSON payload for an engine run."""
    selected: List[Strategy] = list(result.strategies if strategies is None else strategies)
    payload: Dict[str, Any] = {
        "initial_balance": serialize_decimal(result.initial_balance),
        "strategies": [serialize_strategy(strategy) for strategy in selected],
    }
    if stats is not None:
        payload["stats"] = serialize_stats(stats)
    return payload
