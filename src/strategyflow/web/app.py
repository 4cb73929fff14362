"""FastAPI application factory for the StrategyFlow API."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from ..config import ConfigurationError
from ..core.parser import parse_csv_text
from ..services.analytics import (
    compute_stats,
    filter_strategies,
    get_context_data,
    pl_per_strategy_type,
    pl_per_symbol,
)
from ..services.engine import process_trade_rows
from ..services.json_serializer import build_result_payload, serialize_breakdown
from ..services.tastytrade import map_transactions_to_rows
from ..services.tastytrade_client import TastytradeClient, TastytradeError
from .dependencies import get_tastytrade_client

logger = logging.getLogger(__name__)

VIEW_CHOICES = {"all", "zero-dte"}
STATUS_CHOICES = {"all", "open", "closed"}


def _decode_upload(content: bytes) -> str:
    return content.decode("utf-8-sig", errors="replace")


def create_app() -> FastAPI:
    """Construct and return the FastAPI application."""
    app = FastAPI(title="StrategyFlow API")

    @app.middleware("http")
    async def disable_caching(request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store"
        return response

    @app.exception_handler(ConfigurationError)
    @app.exception_handler(TastytradeError)
    async def broker_error(request: Request, exc: RuntimeError) -> JSONResponse:
        logger.error("Broker request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/api/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/strategies", tags=["api"])
    async def strategies_api(
        csv_file: UploadFile = File(...),
        view: str = Query(default="all"),
        status: str = Query(default="all"),
        symbol: str = Query(default=""),
    ) -> dict[str, object]:
        """Reconstruct strategies from an uploaded transaction CSV."""
        view_filter = (view or "all").strip().lower()
        if view_filter not in VIEW_CHOICES:
            raise HTTPException(status_code=400, detail="Unsupported view")
        status_filter = (status or "all").strip().lower()
        if status_filter not in STATUS_CHOICES:
            raise HTTPException(status_code=400, detail="Unsupported status filter")

        content = await csv_file.read()
        text = _decode_upload(content)
        if not text.strip():
            raise HTTPException(status_code=400, detail="Uploaded file is empty")

        result = process_trade_rows(parse_csv_text(text))
        context = get_context_data(result.strategies, view_filter)
        stats = compute_stats(context, view_filter, result.initial_balance)
        selected = filter_strategies(context, status_filter.upper(), symbol)

        payload = build_result_payload(result, strategies=selected, stats=stats)
        payload["by_symbol"] = [serialize_breakdown(row) for row in pl_per_symbol(context)]
        payload["by_strategy_type"] = [
            serialize_breakdown(row) for row in pl_per_strategy_type(context)
        ]
        return payload

    @app.get("/api/tastytrade/accounts", tags=["broker"])
    def tastytrade_accounts(
        client: TastytradeClient = Depends(get_tastytrade_client),
    ) -> dict[str, object]:
        accounts = client.fetch_accounts()
        return {
            "data": [
                {
                    "accountNumber": account.account_number,
                    "nickname": account.nickname,
                    "isClosed": account.is_closed,
                }
                for account in accounts
            ]
        }

    @app.get("/api/tastytrade/transactions", tags=["broker"])
    def tastytrade_transactions(
        account_number: str | None = Query(default=None, alias="accountNumber"),
        start_date: str | None = Query(default=None, alias="startDate"),
        end_date: str | None = Query(default=None, alias="endDate"),
        client: TastytradeClient = Depends(get_tastytrade_client),
    ) -> dict[str, object]:
        """Fetch an account's transactions already mapped to CSV export rows."""
        account = (account_number or "").strip()
        if not account:
            raise HTTPException(status_code=400, detail="accountNumber is required")
        transactions = client.fetch_transactions(
            account,
            start_date=(start_date or "").strip() or None,
            end_date=(end_date or "").strip() or None,
        )
        return {"data": map_transactions_to_rows(transactions)}

    return app
