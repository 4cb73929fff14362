"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from strategyflow.config import get_settings
from strategyflow.core.models import TransactionRecord

CSV_HEADER = (
    "Date,Type,Sub Type,Action,Symbol,Instrument Type,Description,Value,Quantity,"
    "Average Price,Commissions,Fees,Multiplier,Root Symbol,Underlying Symbol,Expiration Date,"
    "Strike Price,Call or Put,Order #,Total,Currency"
)


@pytest.fixture(autouse=True)
def reset_settings_cache(monkeypatch):
    """Give every test a clean settings cache and known broker credentials."""
    monkeypatch.setenv("TASTYTRADE_CLIENT_ID", "client-id")
    monkeypatch.setenv("TASTYTRADE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("TASTYTRADE_REFRESH_TOKEN", "refresh-token")
    monkeypatch.delenv("TASTYTRADE_API_BASE_URL", raising=False)
    get_settings.cache_clear()
    try:
        yield
    finally:
        get_settings.cache_clear()


def _make_record(**overrides) -> TransactionRecord:
    """Convenience factory for normalized transaction records."""
    values = {
        "timestamp": datetime(2024, 1, 2, 15, 0),
        "action": "SELL_TO_OPEN",
        "sub_type": "Sell to Open",
        "underlying": "SPY",
        "strike": Decimal("470"),
        "option_type": "CALL",
        "expiration": date(2024, 1, 19),
        "quantity": Decimal("1"),
        "price": Decimal("1.20"),
        "value": Decimal("120"),
        "total": Decimal("120"),
        "fees": Decimal("1"),
        "commissions": Decimal("0"),
        "order_id": "1001",
    }
    values.update(overrides)
    return TransactionRecord(**values)


def _csv_line(  # noqa: PLR0913
    *,
    when: str,
    action: str,
    underlying: str = "SPY",
    expiration: str = "1/19/24",
    strike: str = "470",
    option_type: str = "CALL",
    quantity: str = "1",
    price: str = "1.20",
    total: str = "120.00",
    fees: str = "1.00",
    order_id: str = "",
    sub_type: str = "",
    type_: str = "Trade",
    value: str | None = None,
) -> str:
    """Render one row of a tastytrade-style CSV export."""
    value = total if value is None else value
    return ",".join(
        [
            when,
            type_,
            sub_type,
            action,
            f"{underlying} 240119C00470000" if underlying else "",
            "Equity Option" if underlying else "",
            "",
            value,
            quantity,
            price,
            "0.00",
            fees,
            "100",
            underlying,
            underlying,
            expiration,
            strike,
            option_type,
            order_id,
            total,
            "USD",
        ]
    )


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def csv_line():
    return _csv_line


def _csv_text(*lines: str) -> str:
    return "\n".join([CSV_HEADER, *lines]) + "\n"


@pytest.fixture
def csv_text():
    return _csv_text


@pytest.fixture
def write_csv(tmp_path):
    """Write an export with the standard header and return its path."""

    def _write(*lines: str, name: str = "transactions.csv"):
        path = tmp_path / name
        path.write_text(_csv_text(*lines), encoding="utf-8")
        return path

    return _write
