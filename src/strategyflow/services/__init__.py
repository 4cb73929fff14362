"""Services for strategy reconstruction and reporting."""

from .analytics import (
    PerformanceStats,
    PnlBreakdown,
    compute_stats,
    filter_strategies,
    get_context_data,
    pl_per_strategy_type,
    pl_per_symbol,
)
from .capital import estimate_capital, is_zero_dte
from .engine import StrategyEngine, build_strategies, process_trade_rows, reconstruct
from .grouping import EventGroup, group_events, sequence_events
from .inventory import InventoryEntry, InventoryLedger
from .json_serializer import (
    build_result_payload,
    serialize_decimal,
    serialize_leg,
    serialize_stats,
    serialize_strategy,
)
from .lifecycle import classify_shape, finalize_strategies

__all__ = [
    "StrategyEngine",
    "build_strategies",
    "reconstruct",
    "process_trade_rows",
    "EventGroup",
    "group_events",
    "sequence_events",
    "InventoryEntry",
    "InventoryLedger",
    "classify_shape",
    "finalize_strategies",
    "estimate_capital",
    "is_zero_dte",
    "PerformanceStats",
    "PnlBreakdown",
    "compute_stats",
    "filter_strategies",
    "get_context_data",
    "pl_per_symbol",
    "pl_per_strategy_type",
    "serialize_decimal",
    "serialize_leg",
    "serialize_strategy",
    "serialize_stats",
    "build_result_payload",
]
