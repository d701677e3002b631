"""Sesiones autenticadas por machine token.

Las sesiones viven solo en memoria (sin persistencia en disco); un reinicio
del proceso obliga a autenticar de nuevo.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict

import requests

from .fetcher import AuthenticationError, PantheonAPIError, account_id_from_token
from .http import request_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    machine_token: str
    session_token: str
    user_id: str
    email: str


class SessionManager:
    """Thread-safe cache of one ``Session`` per machine token."""

    def __init__(
        self,
        http: requests.Session,
        api_url: str,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._http = http
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def authenticate(self, machine_token: str) -> Session:
        """Always perform a fresh login, replacing any cached session."""
        with self._lock:
            session = self._login(machine_token)
            self._sessions[machine_token] = session
            return session

    def get_session(self, machine_token: str) -> Session:
        with self._lock:
            session = self._sessions.get(machine_token)
        if session is not None:
            return session
        return self.authenticate(machine_token)

    def invalidate(self, machine_token: str) -> None:
        with self._lock:
            self._sessions.pop(machine_token, None)

    def _login(self, machine_token: str) -> Session:
        try:
            payload = request_json(
                self._http,
                "POST",
                f"{self._api_url}/authorize/machine-token",
                timeout=self._timeout,
                json={"machine_token": machine_token, "client": "terminus"},
            )
        except AuthenticationError:
            raise
        except PantheonAPIError as e:
            raise AuthenticationError(f"authentication failed: {e}") from e

        if not isinstance(payload, dict):
            raise AuthenticationError("authentication failed: unexpected login response")
        session_token = str(payload.get("session") or "")
        user_id = str(payload.get("user_id") or "")
        if not session_token or not user_id:
            raise AuthenticationError("authentication failed: login response without session")

        # Sin email (whoami falla) se usa el sufijo del token como identificador.
        try:
            user = request_json(
                self._http,
                "GET",
                f"{self._api_url}/users/{user_id}",
                timeout=self._timeout,
                session_token=session_token,
            )
            email = str(user.get("email") or "") or account_id_from_token(machine_token)
        except PantheonAPIError as e:
            email = account_id_from_token(machine_token)
            logger.warning("[PANTHEON] whoami failed user_id=%s fallback=%s err=%s", user_id, email, e)

        return Session(
            machine_token=machine_token,
            session_token=session_token,
            user_id=user_id,
            email=email,
        )
