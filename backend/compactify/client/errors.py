"""Errors raised by :class:`~compactify.client.api.ApiClient`."""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """
    Non-2xx response from the API.

    :param status_code: HTTP status, ``0`` when no response was received.
    :param message: The problem ``detail`` when present, else a generic text.
    :param payload: Decoded response body, if any.
    """

    def __init__(self, status_code: int, message: str, payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class AuthenticationRequiredError(ApiError):
    """401 that survived one refresh-and-retry."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(401, message)


class TooManyRequestsError(ApiError):
    def __init__(self, message: str = "Too many requests. Please try again later.") -> None:
        super().__init__(429, message)


class RequestTimeoutError(ApiError):
    def __init__(self, message: str = "Request timeout. Please try again.") -> None:
        super().__init__(0, message)
