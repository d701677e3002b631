"""Upstream access to the Pantheon platform."""

from .client import PantheonClient
from .fetcher import (
    AuthenticationError,
    Fetcher,
    FetchWindow,
    PantheonAPIError,
    UpstreamError,
    account_id_from_token,
)
from .fixtures import FixtureFetcher

__all__ = [
    "AuthenticationError",
    "Fetcher",
    "FetchWindow",
    "FixtureFetcher",
    "PantheonAPIError",
    "PantheonClient",
    "UpstreamError",
    "account_id_from_token",
]
