"""Thin JSON-over-HTTP helper shared by the session manager and the client."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..version import user_agent
from .fetcher import AuthenticationError, UpstreamError

logger = logging.getLogger(__name__)


def request_json(
    http: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float,
    session_token: Optional[str] = None,
    **kwargs: Any,
) -> Any:
    """Perform one request and decode its JSON body.

    401/403 map to ``AuthenticationError``; transport failures, other error
    statuses and undecodable bodies map to ``UpstreamError``.
    """
    headers = {
        "User-Agent": user_agent(),
        "Accept": "application/json",
    }
    if session_token:
        headers["Authorization"] = f"Bearer {session_token}"

    logger.debug("[PANTHEON] request method=%s url=%s", method, url)
    try:
        response = http.request(method, url, headers=headers, timeout=timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        raise UpstreamError(f"{method} {url} failed: {e}") from e

    logger.debug("[PANTHEON] response method=%s url=%s status=%d", method, url, response.status_code)

    if response.status_code in (401, 403):
        raise AuthenticationError(f"{method} {url} rejected status={response.status_code}")
    if response.status_code >= 400:
        raise UpstreamError(
            f"{method} {url} failed status={response.status_code} body={response.text[:200]}"
        )

    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(f"{method} {url} returned invalid JSON") from e
