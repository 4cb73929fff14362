"""Tests for the StrategyFlow FastAPI application."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from strategyflow.config import ConfigurationError
from strategyflow.services.tastytrade_client import BrokerAccount, TastytradeError
from strategyflow.web import create_app
from strategyflow.web.dependencies import get_tastytrade_client


class StubClient:
    """Minimal broker client used through dependency overrides."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    def fetch_accounts(self):
        if self.error:
            raise self.error
        return [BrokerAccount(account_number="5WT2", nickname="Main", is_closed=False)]

    def fetch_transactions(self, account_number, *, start_date=None, end_date=None):
        if self.error:
            raise self.error
        self.calls.append((account_number, start_date, end_date))
        return [
            {
                "executed-at": "2024-01-02T15:00:00.000+00:00",
                "transaction-sub-type": "Sell to Open",
                "action": "Sell to Open",
                "symbol": "SPY   240119C00470000",
                "instrument-type": "Equity Option",
                "value": "120.0",
                "value-effect": "Credit",
                "quantity": "1",
                "price": "1.2",
                "order-id": 1001,
            }
        ]


def _make_client(stub: StubClient | None = None) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_tastytrade_client] = lambda: stub or StubClient()
    return TestClient(app)


@pytest.fixture
def csv_bytes(csv_text, csv_line):
    text = csv_text(
        csv_line(
            when="2024-01-02T15:00:00+0000",
            action="SELL_TO_OPEN",
            total="120.00",
            order_id="1001",
        ),
        csv_line(
            when="2024-01-05T15:00:00+0000",
            action="BUY_TO_CLOSE",
            total="-40.00",
            order_id="1002",
        ),
    )
    return text.encode("utf-8")


def test_health_endpoint():
    response = _make_client().get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["cache-control"] == "no-store"


def test_strategies_upload(csv_bytes):
    response = _make_client().post(
        "/api/strategies",
        files={"csv_file": ("transactions.csv", csv_bytes, "text/csv")},
    )

    assert response.status_code == 200
    payload = response.json()
    [strategy] = payload["strategies"]
    assert strategy["total_pl"] == "80"
    assert strategy["status"] == "CLOSED"
    assert payload["stats"]["win_count"] == 1
    assert payload["by_symbol"][0]["label"] == "SPY"
    assert response.headers["cache-control"] == "no-store"


def test_strategies_upload_status_filter(csv_bytes):
    response = _make_client().post(
        "/api/strategies?status=open",
        files={"csv_file": ("transactions.csv", csv_bytes, "text/csv")},
    )

    assert response.status_code == 200
    assert response.json()["strategies"] == []


def test_strategies_upload_rejects_empty_file():
    response = _make_client().post(
        "/api/strategies",
        files={"csv_file": ("empty.csv", b"", "text/csv")},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Uploaded file is empty"


def test_strategies_upload_rejects_unknown_view(csv_bytes):
    response = _make_client().post(
        "/api/strategies?view=weekly",
        files={"csv_file": ("transactions.csv", csv_bytes, "text/csv")},
    )

    assert response.status_code == 400


def test_tastytrade_accounts():
    response = _make_client().get("/api/tastytrade/accounts")

    assert response.status_code == 200
    assert response.json() == {
        "data": [{"accountNumber": "5WT2", "nickname": "Main", "isClosed": False}]
    }


def test_tastytrade_accounts_error_is_500():
    client = _make_client(StubClient(TastytradeError("invalid refresh token")))

    response = client.get("/api/tastytrade/accounts")

    assert response.status_code == 500
    assert response.json() == {"detail": "invalid refresh token"}
    assert response.headers["cache-control"] == "no-store"


def test_tastytrade_configuration_error_is_500():
    client = _make_client(StubClient(ConfigurationError("Missing required environment variable")))

    response = client.get("/api/tastytrade/accounts")

    assert response.status_code == 500
    assert "Missing required environment variable" in response.json()["detail"]


def test_tastytrade_transactions_maps_rows():
    stub = StubClient()
    client = _make_client(stub)

    response = client.get(
        "/api/tastytrade/transactions",
        params={"accountNumber": "5WT2", "startDate": "2024-01-01"},
    )

    assert response.status_code == 200
    [row] = response.json()["data"]
    assert row["Action"] == "SELL_TO_OPEN"
    assert row["Underlying Symbol"] == "SPY"
    assert row["Strike Price"] == "470"
    assert stub.calls == [("5WT2", "2024-01-01", None)]


def test_tastytrade_transactions_requires_account():
    response = _make_client().get("/api/tastytrade/transactions")

    assert response.status_code == 400
    assert response.json()["detail"] == "accountNumber is required"
