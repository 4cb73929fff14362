"""FastAPI surface for strategy reconstruction and the tastytrade proxy."""

from .app import create_app

__all__ = ["create_app"]
