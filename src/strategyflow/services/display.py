"""
Display formatting services for the strategyflow CLI.

This module provides formatting functions for rendering strategies, legs and
summary statistics in the terminal.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.legs import Leg, Strategy


def format_currency(value: Decimal | None) -> str:
    """Format a decimal value as currency."""
    if value is None:
        return "--"
    quantized = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    quantized = abs(quantized)
    return f"{sign}${quantized:,.2f}"


def format_percent(value: Decimal) -> str:
    """Format a value that is already expressed in percent (``12.5`` -> ``12.5%``)."""
    percent = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{percent:,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    elif text.endswith("0"):
        text = text[:-1]
    return f"{text}%"


def format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else "--"


def format_quantity(value: Decimal) -> str:
    normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        return f"{int(normalized)}"
    return format(normalized, "f")


def format_leg(leg: Leg) -> str:
    """Compact one-line leg description without the symbol, e.g. ``-1 2024-01-19 450 CALL``."""
    sign = "+" if leg.is_long else "-"
    expiration = leg.expiration.isoformat() if leg.expiration else "--"
    strike = format_quantity(leg.strike)
    return f"{sign}{format_quantity(leg.quantity)} {expiration} {strike} {leg.option_type}"


def format_strategy_legs(strategy: Strategy) -> str:
    return "\n".join(format_leg(leg) for leg in strategy.legs)
