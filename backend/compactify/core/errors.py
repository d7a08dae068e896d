"""
Problem+json (RFC 7807) rendering for every JSON error the API emits.

Service failures reach this module already translated into :class:`APIError`
by :meth:`BaseService.translate_exceptions`; framework and database errors
are caught here directly. The public redirect blueprint installs its own
plain-text handlers and never goes through these.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from compactify.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

_STATUS_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    429: "too_many_requests",
    500: "internal_server_error",
    503: "service_unavailable",
}

# Database failures answered with a fixed, non-leaking message.
_DB_FAILURES: tuple[tuple[type[Exception], HTTPStatus, str, str], ...] = (
    (IntegrityError, HTTPStatus.CONFLICT, "conflict", "Resource conflict"),
    (OperationalError, HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable", "Service temporarily unavailable"),
)


def _code_for(status: int) -> str:
    return _STATUS_CODES.get(status, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the problem document.

    :param status: HTTP status code.
    :param code: Stable machine-readable code (``quota_exceeded``, ...).
    :param message: Client-safe summary, sent as ``detail``.
    :param details: Optional structured extras such as field errors.
    :returns: Problem dictionary stamped with the request id.
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _render(problem: dict[str, Any], status: int) -> Response:
    resp = jsonify(problem)
    resp.mimetype = PROBLEM_MIMETYPE
    resp.status_code = int(status)
    return resp


class APIError(Exception):
    """
    Error that maps one-to-one onto a problem+json response.

    Parameters
    ----------
    message : str
        Client-facing ``detail``.
    status_code : int, optional
        HTTP status, ``400`` by default.
    code : str, optional
        Machine-readable identifier, ``"bad_request"`` by default.
    details : dict[str, Any] | None, optional
        Extra structured payload.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


def problem_response(err: APIError) -> Response:
    """
    Render ``err`` from inside a view.

    For handlers that need to touch the error response before returning it,
    e.g. ``/auth/refresh`` clearing the refresh cookie on a 401.
    """
    return _render(err.to_problem(), err.status_code)


class Unauthorized(APIError):
    """401 with a message that never says which check failed."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    """403, e.g. the per-owner link quota."""

    def __init__(self, message: str = "Forbidden", code: str = "forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code=code)


class Conflict(APIError):
    """409 for uniqueness collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT, code="conflict")


class ServiceUnavailable(APIError):
    """503, the request may succeed if retried later."""

    def __init__(
        self, message: str = "Service temporarily unavailable", code: str = "service_unavailable"
    ) -> None:
        super().__init__(message, status_code=HTTPStatus.SERVICE_UNAVAILABLE, code=code)


def _log_problem(kind: str, problem: dict[str, Any], *, exc_info: BaseException | None = None) -> None:
    status = int(problem["status"])
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(
        level,
        "%s: code=%s status=%s detail=%s request_id=%s",
        kind,
        problem["code"],
        status,
        problem["detail"],
        problem["request_id"],
        exc_info=exc_info,
    )


def _register_db_failure(
    app: Flask, exc_type: type[Exception], status: HTTPStatus, code: str, message: str
) -> None:
    def _handler(err: Exception):
        problem = _as_problem(status=status, code=code, message=message)
        _log_problem(exc_type.__name__, problem, exc_info=err)
        return _render(problem, status)

    app.register_error_handler(exc_type, _handler)


def init_app(app: Flask) -> None:
    """
    Register the problem+json handlers on ``app``.

    5xx responses are logged at error level with the traceback, 4xx at
    warning level. Every document carries the request id.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        _log_problem("APIError", problem)
        return _render(problem, err.status_code)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(err: RateLimitExceeded):
        problem = _as_problem(
            status=HTTPStatus.TOO_MANY_REQUESTS,
            code="too_many_requests",
            message="Too many requests. Please try again later.",
            details={"limit": str(err.description)},
        )
        _log_problem("RateLimitExceeded", problem)
        return _render(problem, HTTPStatus.TOO_MANY_REQUESTS)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = _code_for(status)
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        problem = _as_problem(status=status, code=code, message=message)
        _log_problem("HTTPException", problem)
        return _render(problem, status)

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.normalized_messages()},
        )
        _log_problem("ValidationError", problem)
        return _render(problem, HTTPStatus.UNPROCESSABLE_ENTITY)

    for exc_type, status, code, message in _DB_FAILURES:
        _register_db_failure(app, exc_type, status, code, message)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        _log_problem("Unhandled exception", problem, exc_info=err)
        return _render(problem, HTTPStatus.INTERNAL_SERVER_ERROR)
