from __future__ import annotations

from decimal import Decimal

from strategyflow.core.legs import StrategyStatus
from strategyflow.services.engine import process_trade_rows
from strategyflow.services.tastytrade import (
    ROW_COLUMNS,
    apply_value_effect,
    format_numeric_field,
    map_transaction_to_row,
    map_transactions_to_rows,
    parse_option_symbol,
    sum_fee_components,
    to_short_date,
)


def _make_transaction(**overrides):
    transaction = {
        "executed-at": "2024-01-02T15:00:00.000+00:00",
        "transaction-type": "Trade",
        "transaction-sub-type": "Sell to Open",
        "action": "Sell to Open",
        "symbol": "SPY   240119C00470000",
        "instrument-type": "Equity Option",
        "description": "Sold 1 SPY 01/19/24 Call 470.00 @ 1.20",
        "value": "120.0",
        "value-effect": "Credit",
        "quantity": "1.0",
        "price": "1.2",
        "commission": "1.0",
        "commission-effect": "Debit",
        "clearing-fees": "0.1",
        "clearing-fees-effect": "Debit",
        "regulatory-fees": "0.04",
        "regulatory-fees-effect": "Debit",
        "net-value": "118.86",
        "net-value-effect": "Credit",
        "underlying-symbol": "SPY",
        "order-id": 1001,
        "currency": "USD",
    }
    transaction.update(overrides)
    return transaction


def test_parse_option_symbol_spaced_and_compact():
    assert parse_option_symbol("SPY   240119C00470000") == {
        "underlying": "SPY",
        "expiration_date": "01/19/24",
        "strike_price": Decimal("470"),
        "call_or_put": "CALL",
    }
    parsed = parse_option_symbol("SPXW240119P04702500")
    assert parsed["underlying"] == "SPXW"
    assert parsed["strike_price"] == Decimal("4702.5")
    assert parsed["call_or_put"] == "PUT"
    assert parse_option_symbol("AAPL") is None
    assert parse_option_symbol(None) is None


def test_apply_value_effect_signs_amounts():
    assert apply_value_effect("5", "Debit") == Decimal("-5")
    assert apply_value_effect("-5", "Credit") == Decimal("5")
    assert apply_value_effect("5", "None") == Decimal("5")
    assert apply_value_effect("oops", "Debit") == Decimal("0")


def test_format_numeric_field():
    assert format_numeric_field(Decimal("120.0")) == "120"
    assert format_numeric_field(Decimal("-0.000")) == "0"
    assert format_numeric_field(Decimal("0.123456789")) == "0.12345679"


def test_to_short_date():
    assert to_short_date("2024-01-19") == "01/19/24"
    assert to_short_date("01/19/24") == "01/19/24"
    assert to_short_date("") == ""
    assert to_short_date("soon") == ""


def test_sum_fee_components():
    assert sum_fee_components(_make_transaction()) == Decimal("-0.14")


def test_map_transaction_to_row():
    row = map_transaction_to_row(_make_transaction())

    assert tuple(row) == ROW_COLUMNS
    assert row["Action"] == "SELL_TO_OPEN"
    assert row["Sub Type"] == "Sell to Open"
    assert row["Value"] == "120"
    assert row["Average Price"] == "1.2"
    assert row["Commissions"] == "-1"
    assert row["Fees"] == "-0.14"
    assert row["Total"] == "118.86"
    assert row["Multiplier"] == "100"
    assert row["Underlying Symbol"] == "SPY"
    assert row["Expiration Date"] == "01/19/24"
    assert row["Strike Price"] == "470"
    assert row["Call or Put"] == "CALL"
    assert row["Order #"] == "1001"


def test_map_transaction_without_net_value_sums_components():
    row = map_transaction_to_row(
        _make_transaction(**{"net-value": None, "action": "Buy to Close", "value-effect": "Debit"})
    )

    assert row["Average Price"] == "-1.2"
    assert row["Total"] == "-121.14"


def test_mapped_rows_feed_the_engine():
    closing = _make_transaction(
        **{
            "executed-at": "2024-01-05T15:00:00.000+00:00",
            "transaction-sub-type": "Buy to Close",
            "action": "Buy to Close",
            "value": "40.0",
            "value-effect": "Debit",
            "price": "0.4",
            "net-value": "41.14",
            "net-value-effect": "Debit",
            "order-id": 1002,
        }
    )

    result = process_trade_rows(map_transactions_to_rows([_make_transaction(), closing]))

    [strategy] = result.strategies
    assert strategy.status is StrategyStatus.CLOSED
    assert strategy.total_pl == Decimal("77.72")
    assert strategy.fees == Decimal("-2.28")
