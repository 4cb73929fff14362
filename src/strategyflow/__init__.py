"""
StrategyFlow - Options strategy reconstruction tool.

Rebuilds multi-leg option strategies and their realized P&L from brokerage transaction
history.
"""

__version__ = "0.1.0"

from .core.legs import EngineResult, Leg, Strategy, StrategyShape, StrategyStatus
from .core.models import TransactionRecord
from .core.parser import load_csv_rows, parse_csv_text, prepare_records
from .services.capital import estimate_capital, is_zero_dte
from .services.engine import build_strategies, process_trade_rows, reconstruct

__all__ = [
    "TransactionRecord",
    "Leg",
    "Strategy",
    "StrategyShape",
    "StrategyStatus",
    "EngineResult",
    "parse_csv_text",
    "load_csv_rows",
    "prepare_records",
    "build_strategies",
    "reconstruct",
    "process_trade_rows",
    "estimate_capital",
    "is_zero_dte",
]
