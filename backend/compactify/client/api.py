"""
HTTP client for the Compactify API.

Holds the access token in a :class:`ClientSessionCache` and relies on the
server's httpOnly refresh cookie (kept in the ``requests.Session`` jar) to
renew it. Every call refreshes proactively when the token is near expiry
and retries once after a refresh when the server answers 401.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import datetime
from typing import Any

import requests

from .errors import (
    ApiError,
    AuthenticationRequiredError,
    RequestTimeoutError,
    TooManyRequestsError,
)
from .handshake import AuthResult, PopupHandshake
from .session_cache import ClientSessionCache

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0


class ApiClient:
    """
    Thin wrapper over ``requests.Session`` speaking the ``/api/v1`` surface.

    :param base_url: Site root, e.g. ``"https://cmpct.fy"``.
    :param cache: Token holder; a fresh one by default.
    :param http: Session to reuse (tests pass their own).
    :param timeout: Per-request timeout in seconds.
    :param api_prefix: Path of the versioned API under ``base_url``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        cache: ClientSessionCache | None = None,
        http: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        api_prefix: str = "/api/v1",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_url = self.base_url + "/" + api_prefix.strip("/")
        self.cache = cache or ClientSessionCache()
        self.http = http or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Core request path
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Send one API call and return the decoded JSON body.

        :raises AuthenticationRequiredError: 401 after one refresh attempt.
        :raises TooManyRequestsError: 429.
        :raises RequestTimeoutError: No answer within ``timeout``.
        :raises ApiError: Any other non-2xx answer.
        """
        if authenticated and self.cache.should_refresh():
            self.refresh()

        response = self._send(method, path, json=json, params=params, authenticated=authenticated)
        if response.status_code == 401 and authenticated:
            if self.refresh() is None:
                raise AuthenticationRequiredError()
            response = self._send(method, path, json=json, params=params, authenticated=True)
            if response.status_code == 401:
                self.cache.clear()
                raise AuthenticationRequiredError()

        return self._unwrap(response)

    def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any,
        params: dict[str, Any] | None,
        authenticated: bool,
    ) -> requests.Response:
        headers = {"Accept": "application/json"}
        token = self.cache.get_token() if authenticated else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return self.http.request(
                method,
                self.api_url + path,
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise RequestTimeoutError() from exc

    @staticmethod
    def _unwrap(response: requests.Response) -> Any:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code == 429:
            raise TooManyRequestsError()
        if not response.ok:
            body = payload if isinstance(payload, dict) else {}
            message = body.get("detail") or f"HTTP error! status: {response.status_code}"
            raise ApiError(response.status_code, message, body)
        return payload

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    def refresh(self) -> str | None:
        """
        Exchange the refresh cookie for a new access token.

        Any failure clears the cache and returns ``None``; it never raises.
        """
        try:
            response = self.http.post(
                self.api_url + "/auth/refresh",
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException:
            log.debug("Token refresh failed", exc_info=True)
            self.cache.clear()
            return None

        if not response.ok:
            self.cache.clear()
            return None
        try:
            data = response.json()["data"]
            token = data["access_token"]
        except (ValueError, KeyError, TypeError):
            self.cache.clear()
            return None

        self.cache.set_token(token, int(data.get("expires_in", 3600)), data.get("principal"))
        return token

    def login(self, provider: str, handshake: PopupHandshake) -> Future[AuthResult]:
        """
        Run the popup handshake for ``provider`` and store the result.

        :returns: The handshake future; on success the cache already holds
            the token when the future resolves for the caller.
        """
        future = handshake.authenticate(f"{self.api_url}/auth/{provider}", provider)

        def _store(done: Future[AuthResult]) -> None:
            if done.exception() is None:
                result = done.result()
                self.cache.set_token(result.access_token, result.expires_in, result.principal)

        future.add_done_callback(_store)
        return future

    def logout(self) -> None:
        """Revoke server-side (best effort) and always clear the local token."""
        try:
            self.http.post(
                self.api_url + "/auth/logout",
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException:
            log.debug("Logout request failed", exc_info=True)
        finally:
            self.cache.clear()

    def status(self) -> dict[str, Any]:
        return self.request("GET", "/auth/status", authenticated=False)["data"]

    def me(self) -> dict[str, Any]:
        return self.request("GET", "/auth/me")["data"]

    @property
    def is_authenticated(self) -> bool:
        return self.cache.get_token() is not None

    # ------------------------------------------------------------------ #
    # Links
    # ------------------------------------------------------------------ #

    def shorten_anonymous(self, original_url: str) -> dict[str, Any]:
        body = {"original_url": original_url}
        return self.request("POST", "/links/anonymous", json=body, authenticated=False)["data"]

    def shorten(self, original_url: str, expires_at: datetime | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"original_url": original_url}
        if expires_at is not None:
            body["expires_at"] = expires_at.isoformat()
        return self.request("POST", "/links", json=body)["data"]

    def list_links(
        self,
        *,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        state: str = "all",
        search: str = "",
    ) -> dict[str, Any]:
        """Return the whole dashboard payload: ``data``, ``meta`` and ``stats``."""
        params = {
            "page": page,
            "limit": limit,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "filter": state,
            "search": search,
        }
        return self.request("GET", "/links", params=params)

    def extend(self, link_id: int, expires_at: datetime) -> dict[str, Any]:
        body = {"expires_at": expires_at.isoformat()}
        return self.request("PUT", f"/links/{link_id}/extend", json=body)["data"]

    def regenerate(self, link_id: int) -> dict[str, Any]:
        return self.request("PUT", f"/links/{link_id}/regenerate")["data"]

    def delete(self, link_id: int) -> None:
        self.request("DELETE", f"/links/{link_id}")

    def delete_all(self) -> int:
        return int(self.request("DELETE", "/links")["data"]["deleted"])
