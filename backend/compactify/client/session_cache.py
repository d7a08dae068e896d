"""In-memory holder for the client's access token."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

# Stored expiry is moved this far ahead of the server's.
EXPIRY_SKEW_S = 60
# ``should_refresh`` turns true this long before the stored expiry.
REFRESH_WINDOW_S = 120


class ClientSessionCache:
    """
    Access token and principal, held in process memory only.

    Nothing is ever written to disk; a new process always starts signed-out
    and must refresh through the cookie. One instance belongs to one
    :class:`~compactify.client.api.ApiClient`.

    :param clock: Seconds clock, ``time.time`` by default.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at: float | None = None
        self._principal: dict[str, Any] | None = None

    def set_token(
        self,
        token: str,
        expires_in: int = 3600,
        principal: dict[str, Any] | None = None,
    ) -> None:
        """Store ``token``, expiring it :data:`EXPIRY_SKEW_S` seconds early."""
        with self._lock:
            self._token = token
            self._expires_at = self._clock() + (expires_in - EXPIRY_SKEW_S)
            if principal is not None:
                self._principal = principal

    def get_token(self) -> str | None:
        """Return the token, or ``None`` (clearing it) once expired."""
        with self._lock:
            if self._expired_locked():
                self._clear_locked()
                return None
            return self._token

    @property
    def principal(self) -> dict[str, Any] | None:
        with self._lock:
            return self._principal

    def is_expired(self) -> bool:
        with self._lock:
            return self._expired_locked()

    def should_refresh(self) -> bool:
        """True within :data:`REFRESH_WINDOW_S` seconds of the stored expiry."""
        with self._lock:
            if self._expires_at is None:
                return False
            return self._clock() >= self._expires_at - REFRESH_WINDOW_S

    def clear(self) -> None:
        with self._lock:
            self._clear_locked()

    def _expired_locked(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def _clear_locked(self) -> None:
        self._token = None
        self._expires_at = None
        self._principal = None
