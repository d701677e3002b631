"""Fetcher - interfaz hacia la plataforma Pantheon.

El scheduler solo depende de este contrato, no del transporte concreto
(API HTTP, fixtures JSON, mocks en tests).
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Protocol

from ..core.domain import MetricSample, SiteInfo


class FetchWindow(str, Enum):
    """Lookback requested from the traffic endpoint."""

    BACKFILL = "28d"
    INCREMENTAL = "1d"


class PantheonAPIError(Exception):
    """Base error for anything the upstream platform refuses or fails."""


class AuthenticationError(PantheonAPIError):
    """Machine token rejected (login failed or session no longer valid)."""


class UpstreamError(PantheonAPIError):
    """Site list or metrics could not be retrieved or decoded."""


def account_id_from_token(token: str) -> str:
    """Short identifier for an account whose email is unknown (last 8 chars)."""
    if len(token) >= 8:
        return token[-8:]
    return token


class Fetcher(Protocol):
    def authenticate(self, token: str) -> str:
        """Log in with ``token`` and return the account id (email)."""
        ...

    def list_sites(self, token: str, org_id: str = "") -> Dict[str, SiteInfo]:
        """Sites visible to the account, keyed by site id.

        A non-empty ``org_id`` restricts the list to that organization.
        """
        ...

    def fetch_metrics(
        self,
        token: str,
        site_id: str,
        environment: str,
        window: FetchWindow,
    ) -> Dict[str, MetricSample]:
        """Traffic samples keyed by unix timestamp (as a string)."""
        ...

    def invalidate_session(self, token: str) -> None:
        """Forget any cached session so the next call logs in again."""
        ...
