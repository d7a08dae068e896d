"""Python client for the Compactify API and its popup sign-in flow."""

from .api import ApiClient
from .errors import (
    ApiError,
    AuthenticationRequiredError,
    RequestTimeoutError,
    TooManyRequestsError,
)
from .handshake import (
    AuthenticationCancelledError,
    AuthenticationTimeoutError,
    AuthResult,
    HandshakeError,
    MessageChannel,
    PopupBlockedError,
    PopupHandshake,
    PopupWindow,
    ProviderAuthError,
)
from .session_cache import ClientSessionCache

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthResult",
    "AuthenticationCancelledError",
    "AuthenticationRequiredError",
    "AuthenticationTimeoutError",
    "ClientSessionCache",
    "HandshakeError",
    "MessageChannel",
    "PopupBlockedError",
    "PopupHandshake",
    "PopupWindow",
    "ProviderAuthError",
    "RequestTimeoutError",
    "TooManyRequestsError",
]
