from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from strategyflow.core.parser import (
    is_engine_row,
    load_csv_rows,
    normalize_action,
    normalize_row,
    parse_csv_text,
    parse_expiration,
    parse_timestamp,
    prepare_records,
    safe_decimal,
    scan_initial_balance,
)


def test_parse_csv_text_strips_bom_and_trims_values():
    text = '\ufeffDate, Action ,Symbol\n 2024-01-02T15:00:00Z , Sell to Open ,"SPY, weekly"\n'

    rows = parse_csv_text(text)

    assert rows == [
        {"Date": "2024-01-02T15:00:00Z", "Action": "Sell to Open", "Symbol": "SPY, weekly"}
    ]


def test_parse_csv_text_skips_blank_lines_and_pads_missing_cells():
    rows = parse_csv_text("Date,Action,Total\n\n2024-01-02,BUY_TO_OPEN\n   \n")

    assert rows == [{"Date": "2024-01-02", "Action": "BUY_TO_OPEN", "Total": ""}]


def test_parse_csv_text_empty_input_returns_no_rows():
    assert parse_csv_text("") == []


def test_load_csv_rows_reads_file(tmp_path):
    path = tmp_path / "export.csv"
    path.write_text("Date,Action\n2024-01-02,SELL_TO_OPEN\n", encoding="utf-8-sig")

    assert load_csv_rows(path) == [{"Date": "2024-01-02", "Action": "SELL_TO_OPEN"}]


def test_safe_decimal_is_lenient():
    assert safe_decimal("$1,234.50") == Decimal("1234.50")
    assert safe_decimal("-0.75") == Decimal("-0.75")
    assert safe_decimal("") == Decimal("0")
    assert safe_decimal(None) == Decimal("0")
    assert safe_decimal("n/a") == Decimal("0")
    assert safe_decimal("NaN") == Decimal("0")


def test_parse_timestamp_converts_offsets_to_utc():
    assert parse_timestamp("2024-01-02T10:00:00-0500") == datetime(2024, 1, 2, 15, 0)
    assert parse_timestamp("2024-01-02T10:00:00-05:00") == datetime(2024, 1, 2, 15, 0)
    assert parse_timestamp("2024-01-02T15:00:00Z") == datetime(2024, 1, 2, 15, 0)


def test_parse_timestamp_accepts_us_dates():
    assert parse_timestamp("1/2/2024 3:30") == datetime(2024, 1, 2, 3, 30)
    assert parse_timestamp("01/02/2024") == datetime(2024, 1, 2)


def test_parse_timestamp_returns_none_for_garbage():
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None


def test_parse_expiration_formats():
    assert parse_expiration("1/19/24") == date(2024, 1, 19)
    assert parse_expiration("01/19/2024") == date(2024, 1, 19)
    assert parse_expiration("2024-01-19") == date(2024, 1, 19)
    assert parse_expiration("2024-02-30") is None
    assert parse_expiration("") is None


def test_normalize_action_collapses_separators():
    assert normalize_action("Sell to Open") == "SELL_TO_OPEN"
    assert normalize_action(" buy-to-close ") == "BUY_TO_CLOSE"
    assert normalize_action(None) == ""


def test_scan_initial_balance_nets_deposits_and_withdrawals():
    rows = [
        {"Sub Type": "Deposit", "Value": "10,000.00"},
        {"Sub Type": "Withdrawal", "Value": "-2500"},
        {"Sub Type": "Deposit", "Value": "500"},
        {"Sub Type": "Sell to Open", "Value": "120"},
    ]

    assert scan_initial_balance(rows) == Decimal("8000.00")


def test_is_engine_row_filters_cash_movements_and_repeated_headers():
    assert is_engine_row({"Date": "2024-01-02", "Action": "SELL_TO_OPEN"})
    assert is_engine_row({"Date": "2024-01-19", "Action": "", "Sub Type": "Expiration"})
    assert not is_engine_row({"Date": "2024-01-02", "Action": "", "Sub Type": "Deposit"})
    assert not is_engine_row({"Date": "Date", "Action": "Action"})
    assert not is_engine_row({"Date": "", "Action": "SELL_TO_OPEN"})


def test_normalize_row_marks_lifecycle_rows_as_system_close():
    record = normalize_row(
        {
            "Date": "2024-01-19T21:00:00+0000",
            "Action": "",
            "Sub Type": "Expiration",
            "Underlying Symbol": "SPY",
            "Strike Price": "470",
            "Call or Put": "CALL",
            "Expiration Date": "1/19/24",
            "Quantity": "1",
            "Total": "0.00",
        }
    )

    assert record.action == "CLOSE_SYSTEM"
    assert record.is_closing
    assert record.close_label == "EXPIRED"
    assert record.order_id is None
    assert record.contract_id == "SPY-2024-01-19-470-CALL"


def test_normalize_row_keeps_invalid_dates():
    record = normalize_row({"Date": "someday", "Action": "Sell to Open", "Order #": "42"})

    assert record.timestamp is None
    assert record.action == "SELL_TO_OPEN"
    assert record.order_id == "42"


def test_prepare_records_returns_balance_and_engine_rows():
    rows = [
        {"Date": "2024-01-01", "Sub Type": "Deposit", "Value": "5000", "Action": ""},
        {"Date": "2024-01-02T15:00:00Z", "Action": "SELL_TO_OPEN", "Total": "120"},
        {"Date": "Date", "Action": "Action"},
    ]

    batch = prepare_records(rows)

    assert batch.initial_balance == Decimal("5000")
    assert len(batch.records) == 1
    assert batch.records[0].total == Decimal("120")
