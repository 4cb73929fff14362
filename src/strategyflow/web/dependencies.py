"""Common dependency providers for the web application."""

from __future__ import annotations

from typing import Iterator

from ..services.tastytrade_client import TastytradeClient


def get_tastytrade_client() -> Iterator[TastytradeClient]:
    """
    FastAPI dependency that yields a broker client built from environment settings.

    Tests can override this dependency to supply fakes or fixtures.
    """
    client = TastytradeClient()
    try:
        yield client
    finally:
        client.close()
