"""Core data models and parsing functionality."""

from .legs import (
    ClosedDetail,
    EngineResult,
    Leg,
    ShapeKind,
    Strategy,
    StrategyShape,
    StrategyStatus,
)
from .models import TransactionRecord
from .parser import load_csv_rows, parse_csv_text, prepare_records

__all__ = [
    "TransactionRecord",
    "Leg",
    "ClosedDetail",
    "Strategy",
    "StrategyShape",
    "ShapeKind",
    "StrategyStatus",
    "EngineResult",
    "parse_csv_text",
    "load_csv_rows",
    "prepare_records",
]
