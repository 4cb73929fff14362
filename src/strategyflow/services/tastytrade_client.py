"""HTTP client for the tastytrade REST API.

Exchanges a long-lived refresh token for a bearer token, then reads accounts and paginated
transaction history. Mapping the returned objects into engine rows lives in
:mod:`strategyflow.services.tastytrade`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

from ..config import TastytradeSettings, get_settings

logger = logging.getLogger(__name__)

MAX_TRANSACTION_PAGES = 200
TRANSACTION_PAGE_SIZE = 2000
DEFAULT_TIMEOUT = 30.0


class TastytradeError(RuntimeError):
    """Raised when the tastytrade API rejects a request or returns an unusable payload."""


@dataclass(frozen=True)
class BrokerAccount:
    account_number: str
    nickname: str
    is_closed: bool


def extract_items(payload: Any) -> List[Dict[str, Any]]:
    """Pull the item list out of the API's various envelope shapes."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return data["items"]
    if isinstance(payload.get("items"), list):
        return payload["items"]
    return []


def extract_pagination(payload: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return None
    pagination = payload.get("pagination")
    if pagination is None and isinstance(payload.get("data"), dict):
        pagination = payload["data"].get("pagination")
    return pagination if isinstance(pagination, dict) else None


def _error_message(response: httpx.Response) -> str:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
            for key in ("error_description", "error_code", "message"):
                if payload.get(key):
                    return str(payload[key])
    return response.text or f"HTTP {response.status_code}"


def _total_pages(pagination: Optional[Mapping[str, Any]]) -> Optional[int]:
    if not pagination:
        return None
    raw = pagination.get("total-pages", pagination.get("totalPages"))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


class TastytradeClient:
    """Thin synchronous wrapper over ``httpx.Client``."""

    def __init__(
        self,
        settings: Optional[TastytradeSettings] = None,
        *,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http_client or httpx.Client(timeout=DEFAULT_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TastytradeClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.settings.base_url}{path}"
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TastytradeError(f"Request to {path} failed: {exc}") from exc
        if response.is_error:
            raise TastytradeError(_error_message(response))
        if "application/json" not in response.headers.get("content-type", ""):
            raise TastytradeError("Unexpected non-JSON response from tastytrade API.")
        return response.json()

    def exchange_refresh_token(self) -> str:
        payload = self._request_json(
            "POST",
            "/oauth/token",
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.settings.refresh_token,
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        token = None
        if isinstance(payload, dict):
            token = payload.get("access_token")
        if not token and isinstance(data, dict):
            token = data.get("access_token") or data.get("access-token")
        if not token:
            raise TastytradeError("OAuth token response missing access token.")
        return token

    def _get(self, access_token: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = {key: value for key, value in (params or {}).items() if value not in (None, "")}
        return self._request_json(
            "GET",
            path,
            params=query,
            headers={"Accept": "application/json", "Authorization": f"Bearer {access_token}"},
        )

    def fetch_accounts(self) -> List[BrokerAccount]:
        token = self.exchange_refresh_token()
        payload = self._get(token, "/customers/me/accounts")

        accounts: List[BrokerAccount] = []
        for item in extract_items(payload):
            nested = item.get("account") if isinstance(item.get("account"), dict) else {}
            number = item.get("account-number") or nested.get("account-number") or item.get(
                "accountNumber"
            )
            if not number:
                continue
            nickname = (
                item.get("nickname") or nested.get("nickname") or nested.get("account-type-name")
            )
            accounts.append(
                BrokerAccount(
                    account_number=str(number),
                    nickname=nickname or "",
                    is_closed=bool(item.get("is-closed") or nested.get("is-closed")),
                )
            )
        return sorted(accounts, key=lambda account: account.account_number)

    def fetch_transactions(
        self,
        account_number: str,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Read every transaction page for an account, oldest first."""
        if not account_number:
            raise ValueError("account_number is required.")

        token = self.exchange_refresh_token()
        path = f"/accounts/{quote(account_number, safe='')}/transactions"
        items: List[Dict[str, Any]] = []
        page_offset = 0

        for _ in range(MAX_TRANSACTION_PAGES):
            payload = self._get(
                token,
                path,
                {
                    "sort": "Asc",
                    "per-page": TRANSACTION_PAGE_SIZE,
                    "page-offset": page_offset,
                    "start-date": start_date,
                    "end-date": end_date,
                },
            )
            batch = extract_items(payload)
            items.extend(batch)
            logger.debug("Fetched page %d with %d transactions", page_offset, len(batch))

            pagination = extract_pagination(payload)
            total_pages = _total_pages(pagination)
            if total_pages is not None:
                if page_offset + 1 >= total_pages:
                    break
            elif not (pagination and (pagination.get("next-link") or pagination.get("nextLink"))):
                if len(batch) < TRANSACTION_PAGE_SIZE:
                    break
            page_offset += 1
        else:
            logger.warning("Stopped after %d transaction pages", MAX_TRANSACTION_PAGES)

        return items
