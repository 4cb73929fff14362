from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from strategyflow.core.legs import Leg, Strategy
from strategyflow.services.capital import estimate_capital, is_zero_dte


def _leg(action: str, option_type: str, strike: str, cost_basis: str, quantity: str = "1") -> Leg:
    return Leg(
        contract_id=f"SPY-2024-01-19-{strike}-{option_type}",
        option_type=option_type,
        action=action,
        quantity=Decimal(quantity),
        open_price=Decimal("0"),
        strike=Decimal(strike),
        expiration=date(2024, 1, 19),
        open_date=None,
        cost_basis=Decimal(cost_basis),
        remaining_qty=Decimal(quantity),
    )


def _strategy(*legs: Leg, underlying: str = "SPY", **overrides) -> Strategy:
    return Strategy(
        id="1",
        underlying=underlying,
        date_open=overrides.get("date_open"),
        date_closed=overrides.get("date_closed"),
        legs=list(legs),
    )


def test_long_option_risks_premium():
    strategy = _strategy(_leg("BUY_TO_OPEN", "CALL", "100", "-200"))

    assert estimate_capital(strategy) == Decimal("200")


def test_debit_call_spread_risks_net_debit():
    strategy = _strategy(
        _leg("BUY_TO_OPEN", "CALL", "100", "-300"),
        _leg("SELL_TO_OPEN", "CALL", "105", "100"),
    )

    assert estimate_capital(strategy) == Decimal("200")


def test_credit_put_spread_risks_width():
    strategy = _strategy(
        _leg("SELL_TO_OPEN", "PUT", "100", "150"),
        _leg("BUY_TO_OPEN", "PUT", "95", "-50"),
    )

    assert estimate_capital(strategy) == Decimal("500")


def test_iron_condor_risks_wider_wing():
    strategy = _strategy(
        _leg("BUY_TO_OPEN", "PUT", "90", "-20"),
        _leg("SELL_TO_OPEN", "PUT", "95", "60"),
        _leg("SELL_TO_OPEN", "CALL", "105", "60"),
        _leg("BUY_TO_OPEN", "CALL", "110", "-20"),
    )

    assert estimate_capital(strategy) == Decimal("500")


def test_cash_secured_put_and_naked_call():
    assert estimate_capital(_strategy(_leg("SELL_TO_OPEN", "PUT", "100", "150"))) == Decimal(
        "10000"
    )
    assert estimate_capital(_strategy(_leg("SELL_TO_OPEN", "CALL", "100", "150"))) == Decimal(
        "2000"
    )


def test_unrecognized_layout_has_no_capital():
    strategy = _strategy(
        _leg("SELL_TO_OPEN", "CALL", "100", "150"),
        _leg("SELL_TO_OPEN", "PUT", "95", "150"),
    )

    assert estimate_capital(strategy) == Decimal("0")


def test_is_zero_dte_requires_index_and_same_day():
    opened = datetime(2024, 1, 19, 14, 30)
    same_day = datetime(2024, 1, 19, 20, 0)
    leg = _leg("SELL_TO_OPEN", "PUT", "4700", "150")

    assert is_zero_dte(_strategy(leg, underlying="spx", date_open=opened, date_closed=same_day))
    assert is_zero_dte(_strategy(leg, underlying="/ESH4", date_open=opened, date_closed=same_day))
    assert not is_zero_dte(
        _strategy(leg, underlying="SPX", date_open=opened, date_closed=datetime(2024, 1, 22))
    )
    assert not is_zero_dte(_strategy(leg, underlying="SPX", date_open=opened))
    assert not is_zero_dte(
        _strategy(leg, underlying="AAPL", date_open=opened, date_closed=same_day)
    )
