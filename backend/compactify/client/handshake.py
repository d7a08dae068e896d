"""
Popup OAuth handshake.

The provider flow runs in a popup; the backend callback page posts one typed
message (``OAUTH_SUCCESS`` or ``OAUTH_ERROR``) back to the opener. This
module models the opener side over an in-process :class:`MessageChannel`
so any host (a desktop shell, an embedded browser, tests) can drive it.

Each handshake is a two-state channel: awaiting a result, then settled. It
settles exactly once on the first of: success message, error message, popup
closed, or timeout. Every listener, poller and timer is torn down at that
moment and later messages are no-ops. Messages from origins outside the
allow-list are dropped without a trace.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Protocol

SUCCESS_MESSAGE = "OAUTH_SUCCESS"
ERROR_MESSAGE = "OAUTH_ERROR"

DEFAULT_POLL_INTERVAL_S = 1.0
DEFAULT_TIMEOUT_S = 300.0
DEFAULT_EXPIRES_IN_S = 3600

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Results and errors
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Access token and principal delivered by a successful handshake."""

    access_token: str
    principal: dict[str, Any]
    expires_in: int = DEFAULT_EXPIRES_IN_S


class HandshakeError(Exception):
    """Base class for handshake failures."""


class PopupBlockedError(HandshakeError):
    """The popup could not be opened."""


class AuthenticationCancelledError(HandshakeError):
    """The user closed the popup before finishing."""


class AuthenticationTimeoutError(HandshakeError):
    """No result arrived before the deadline."""


class ProviderAuthError(HandshakeError):
    """The callback page reported ``OAUTH_ERROR``."""


# --------------------------------------------------------------------------- #
# Messaging primitives
# --------------------------------------------------------------------------- #

Listener = Callable[[str, Any], None]


class MessageChannel:
    """Thread-safe fan-out of ``(origin, data)`` messages to listeners."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def post(self, data: Any, *, origin: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(origin, data)
            except Exception:
                logger.exception("Message listener failed")


class PopupWindow(Protocol):
    """The part of a popup window the handshake needs."""

    @property
    def closed(self) -> bool: ...

    def close(self) -> None: ...


PopupOpener = Callable[[str, str], PopupWindow | None]


def _normalize_origin(origin: str) -> str:
    return origin.rstrip("/")


def _expires_in(value: Any) -> int:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN_S
    return seconds if seconds > 0 else DEFAULT_EXPIRES_IN_S


# --------------------------------------------------------------------------- #
# Handshake
# --------------------------------------------------------------------------- #


class _PendingAuth:
    """One in-flight handshake; settles exactly once."""

    def __init__(
        self,
        *,
        popup: PopupWindow,
        channel: MessageChannel,
        allowed_origins: frozenset[str],
        poll_interval: float,
        timeout: float,
    ) -> None:
        self.future: Future[AuthResult] = Future()
        self._popup = popup
        self._channel = channel
        self._allowed = allowed_origins
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._settled = False
        self._stop = threading.Event()
        self._timer = threading.Timer(timeout, self._on_timeout)
        self._timer.daemon = True
        self._poller = threading.Thread(target=self._poll_closed, daemon=True)

    def start(self) -> None:
        self._channel.add_listener(self._on_message)
        self._timer.start()
        self._poller.start()

    def _on_message(self, origin: str, data: Any) -> None:
        if _normalize_origin(origin) not in self._allowed:
            return
        if not isinstance(data, Mapping):
            return

        kind = data.get("type")
        if kind == SUCCESS_MESSAGE:
            token = data.get("access_token")
            if not token:
                self._settle(error=ProviderAuthError("Authentication failed"))
                return
            principal = data.get("principal")
            self._settle(
                result=AuthResult(
                    access_token=str(token),
                    principal=dict(principal) if isinstance(principal, Mapping) else {},
                    expires_in=_expires_in(data.get("expires_in")),
                )
            )
        elif kind == ERROR_MESSAGE:
            self._settle(error=ProviderAuthError(data.get("error") or "Authentication failed"))

    def _poll_closed(self) -> None:
        while not self._stop.wait(self._poll_interval):
            if self._popup.closed:
                self._settle(error=AuthenticationCancelledError("Authentication cancelled"))
                return

    def _on_timeout(self) -> None:
        self._settle(error=AuthenticationTimeoutError("Authentication timeout"))

    def _settle(
        self, *, result: AuthResult | None = None, error: HandshakeError | None = None
    ) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True

        self._teardown()
        if error is not None:
            self.future.set_exception(error)
        else:
            self.future.set_result(result)  # type: ignore[arg-type]

    def _teardown(self) -> None:
        self._channel.remove_listener(self._on_message)
        self._stop.set()
        self._timer.cancel()
        if not self._popup.closed:
            self._popup.close()


class PopupHandshake:
    """
    Opener side of the popup OAuth flow.

    :param opener: Opens ``(url, window_name)`` and returns the popup, or
        ``None`` when blocked.
    :param channel: Channel the callback page posts to.
    :param allowed_origins: Origins accepted as senders (own origin and API
        origin); empty entries are ignored.
    :param poll_interval: Seconds between popup-closed checks.
    :param timeout: Hard deadline in seconds.
    """

    def __init__(
        self,
        opener: PopupOpener,
        channel: MessageChannel,
        *,
        allowed_origins: Iterable[str | None],
        poll_interval: float = DEFAULT_POLL_INTERVAL_S,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._opener = opener
        self._channel = channel
        self._allowed = frozenset(_normalize_origin(o) for o in allowed_origins if o)
        self._poll_interval = poll_interval
        self._timeout = timeout

    def authenticate(self, provider_redirect_url: str, provider: str = "oauth") -> Future[AuthResult]:
        """
        Open the popup at ``provider_redirect_url`` and wait for its message.

        :returns: Future resolved with :class:`AuthResult` or failed with a
            :class:`HandshakeError`.
        """
        popup = self._opener(provider_redirect_url, f"{provider}_auth")
        if popup is None:
            blocked: Future[AuthResult] = Future()
            blocked.set_exception(PopupBlockedError("Popup blocked. Please allow popups."))
            return blocked

        pending = _PendingAuth(
            popup=popup,
            channel=self._channel,
            allowed_origins=self._allowed,
            poll_interval=self._poll_interval,
            timeout=self._timeout,
        )
        pending.start()
        return pending.future
