"""Capital-at-risk heuristics and 0DTE classification.

``estimate_capital`` is a rough exposure figure per strategy shape used for return-on-capital
reporting. It is not a broker margin calculation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence

from ..core.legs import ZERO, Leg, Strategy

CONTRACT_MULTIPLIER = Decimal("100")
NAKED_CALL_FACTOR = Decimal("0.2")
ZERO_DTE_UNDERLYINGS = ("SPX", "XSP", "RUT", "/ES")


def _net_cost(legs: Sequence[Leg]) -> Decimal:
    return abs(sum((leg.cost_basis for leg in legs), ZERO))


def _first(legs: Sequence[Leg], *, long: bool) -> Optional[Leg]:
    for leg in legs:
        if (leg.is_long if long else leg.is_short):
            return leg
    return None


def _wing_width(legs: Sequence[Leg]) -> Decimal:
    long_leg = _first(legs, long=True)
    short_leg = _first(legs, long=False)
    if long_leg is None or short_leg is None:
        return ZERO
    return abs(long_leg.strike - short_leg.strike)


def _vertical_capital(strategy: Strategy, long_leg: Leg, short_leg: Leg) -> Decimal:
    is_debit_call = long_leg.option_type == "CALL" and long_leg.strike < short_leg.strike
    is_debit_put = long_leg.option_type == "PUT" and long_leg.strike > short_leg.strike
    if is_debit_call or is_debit_put:
        return _net_cost(strategy.legs)
    width = abs(long_leg.strike - short_leg.strike)
    return width * CONTRACT_MULTIPLIER * long_leg.quantity


def estimate_capital(strategy: Strategy) -> Decimal:
    """
    Heuristic capital at risk for a strategy.

    Rules are evaluated in order: long-only positions risk their premium; one-long/one-short
    verticals risk the debit (debit spreads) or the strike width (credit spreads); 2x2 iron
    condors and butterflies risk the wider wing; a short put is cash secured at the strike;
    a naked short call is charged 20% of the strike notional. Anything else returns zero.
    """
    legs = strategy.legs
    long_legs: List[Leg] = [leg for leg in legs if leg.is_long]
    short_legs: List[Leg] = [leg for leg in legs if leg.is_short]

    if not short_legs:
        return sum((abs(leg.cost_basis) for leg in legs), ZERO)

    if len(legs) == 2 and len(long_legs) == 1 and len(short_legs) == 1:
        long_leg, short_leg = long_legs[0], short_legs[0]
        if long_leg.option_type == short_leg.option_type:
            return _vertical_capital(strategy, long_leg, short_leg)

    if len(legs) == 4:
        calls = [leg for leg in legs if leg.option_type == "CALL"]
        puts = [leg for leg in legs if leg.option_type == "PUT"]
        if len(calls) == 2 and len(puts) == 2:
            width = max(_wing_width(calls), _wing_width(puts))
            return width * CONTRACT_MULTIPLIER * calls[0].quantity

    if len(legs) == 1 and len(short_legs) == 1:
        short_leg = short_legs[0]
        notional = short_leg.strike * CONTRACT_MULTIPLIER * short_leg.quantity
        if short_leg.option_type == "PUT":
            return notional
        if short_leg.option_type == "CALL":
            return notional * NAKED_CALL_FACTOR

    return ZERO


def is_zero_dte(strategy: Strategy) -> bool:
    """True for index/futures strategies opened and closed on the same calendar day."""
    symbol = (strategy.underlying or "").upper()
    if not any(ticker in symbol for ticker in ZERO_DTE_UNDERLYINGS):
        return False
    if strategy.date_open is None or strategy.date_closed is None:
        return False
    return strategy.date_open.date() == strategy.date_closed.date()
