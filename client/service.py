"""
client/service.py -- HTTP client for the user API.

Wraps every endpoint in a method that returns the parsed response envelope.
A saved token is attached as "Authorization: Bearer <token>" on every call;
any 401 clears it, so a stale or expired token is never sent twice.

Non-2xx responses raise ApiClientError carrying the status code and the
server's envelope, so callers can show the server's message verbatim.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from client.token_store import TokenStore

logger = logging.getLogger("userapi.client")

_TIMEOUT = 10


class ApiClientError(Exception):
    """The API answered with an error status, or could not be reached."""

    def __init__(self, status_code: int, message: str, envelope: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.envelope = envelope or {}

    @property
    def errors(self) -> list[dict[str, str]]:
        return self.envelope.get("errors") or []


class UserServiceClient:
    """Client for /users endpoints.

    Usage:
        api = UserServiceClient("http://localhost:5000/api")
        api.login("john@smu.edu.ph", "password123")   # token saved
        profile = api.get_profile()["data"]
        api.logout()
    """

    def __init__(
        self,
        base_url: str,
        token_store: Optional[TokenStore] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.tokens = token_store or TokenStore()
        self._session = session or requests.Session()
        self._session.headers.setdefault("Content-Type", "application/json")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        headers = {}
        token = self.tokens.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._session.request(
                method, f"{self.base_url}{path}", json=body, headers=headers, timeout=_TIMEOUT
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiClientError(0, f"Could not reach the API: {e}") from e

        try:
            envelope = resp.json()
        except ValueError:
            envelope = {"success": resp.ok, "message": resp.text}

        if resp.status_code == 401:
            self.tokens.clear()
        if not resp.ok:
            raise ApiClientError(resp.status_code, envelope.get("message") or resp.reason, envelope)
        return envelope

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def register(self, account: dict[str, Any]) -> dict[str, Any]:
        """Register an account. The returned token is not saved; log in to start a session."""
        return self._request("POST", "/users/register", account)

    def login(self, email: str, password: str) -> dict[str, Any]:
        envelope = self._request("POST", "/users/login", {"email": email, "password": password})
        token = (envelope.get("data") or {}).get("token")
        if token:
            self.tokens.set(token)
        return envelope

    def logout(self) -> None:
        self.tokens.clear()

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self) -> dict[str, Any]:
        return self._request("GET", "/users/profile")

    def update_profile(self, fields: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", "/users/profile", fields)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_users(self) -> dict[str, Any]:
        return self._request("GET", "/users")

    def get_user(self, account_id: str) -> dict[str, Any]:
        return self._request("GET", f"/users/{account_id}")

    def create_user(self, account: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/users", account)

    def update_user(self, account_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/users/{account_id}", fields)

    def delete_user(self, account_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/users/{account_id}")

    def delete_all_users(self) -> dict[str, Any]:
        return self._request("DELETE", "/users/deleteAllUsers")
