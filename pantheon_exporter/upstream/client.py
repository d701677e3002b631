"""Pantheon API client implementing the ``Fetcher`` contract."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import requests

from ..core.domain import MetricSample, SiteInfo
from .convert import convert_site_list, convert_timeseries
from .fetcher import AuthenticationError, FetchWindow, UpstreamError
from .http import request_json
from .session import Session, SessionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

SITE_LIST_LIMIT = 500


class PantheonClient:
    """Fetcher over the Pantheon (terminus) HTTP API.

    Usage:
        client = PantheonClient(api_url, timeout=30)
        account = client.authenticate(token)
        sites = client.list_sites(token)
        samples = client.fetch_metrics(token, site_id, "live", FetchWindow.BACKFILL)
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 30.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._http = http or requests.Session()
        self._sessions = SessionManager(self._http, self._api_url, timeout=timeout)

    def authenticate(self, token: str) -> str:
        return self._sessions.authenticate(token).email

    def invalidate_session(self, token: str) -> None:
        self._sessions.invalidate(token)

    def list_sites(self, token: str, org_id: str = "") -> Dict[str, SiteInfo]:
        def _list(session: Session) -> Dict[str, SiteInfo]:
            if org_id:
                url = f"{self._api_url}/organizations/{org_id}/memberships/sites"
            else:
                url = f"{self._api_url}/users/{session.user_id}/memberships/sites"
            payload = self._get(session, url, params={"limit": SITE_LIST_LIMIT})
            if isinstance(payload, dict):
                payload = list(payload.values())
            if not isinstance(payload, list):
                raise UpstreamError(f"unexpected site list payload type={type(payload).__name__}")
            return convert_site_list(payload)

        return self._with_session(token, _list)

    def fetch_metrics(
        self,
        token: str,
        site_id: str,
        environment: str,
        window: FetchWindow,
    ) -> Dict[str, MetricSample]:
        def _fetch(session: Session) -> Dict[str, MetricSample]:
            url = f"{self._api_url}/sites/{site_id}/environments/{environment}/traffic"
            payload = self._get(session, url, params={"duration": FetchWindow(window).value})
            if not isinstance(payload, dict) or "timeseries" not in payload:
                raise UpstreamError(f"metrics response for site={site_id} has no timeseries")
            return convert_timeseries(payload["timeseries"])

        return self._with_session(token, _fetch)

    def _get(self, session: Session, url: str, **kwargs: Any) -> Any:
        return request_json(
            self._http,
            "GET",
            url,
            timeout=self._timeout,
            session_token=session.session_token,
            **kwargs,
        )

    def _with_session(self, token: str, call: Callable[[Session], T]) -> T:
        """Run ``call`` with a cached session, logging in again once if it expired."""
        session = self._sessions.get_session(token)
        try:
            return call(session)
        except AuthenticationError:
            logger.info("[PANTHEON] Session rejected, re-authenticating user_id=%s", session.user_id)
            self._sessions.invalidate(token)

        # A second rejection means the token itself is no longer valid.
        return call(self._sessions.get_session(token))
