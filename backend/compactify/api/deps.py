"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from compactify.core.errors import Unauthorized
from compactify.core.logger import ensure_request_id
from compactify.services._shared.base import BaseService, ServiceContext
from compactify.services._shared.errors import ServiceError
from compactify.services.builders import build_link_service, build_session_service
from compactify.services.links import LinkService
from compactify.services.sessions import PrincipalOut, SessionService

F = TypeVar("F", bound=Callable[..., Any])


def _context() -> ServiceContext:
    principal: PrincipalOut | None = g.get("principal")
    return ServiceContext(
        actor_id=principal.id if principal is not None else None,
        request_id=ensure_request_id(),
    )


def link_service() -> LinkService:
    """Return a link service configured from the current app."""

    return build_link_service(current_app.config, ctx=_context())


def session_service() -> SessionService:
    """Return a session service configured from the current app."""

    return build_session_service(current_app.config, ctx=_context())


def bearer_token() -> str | None:
    """Extract the bearer token from the ``Authorization`` header."""

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token and load its principal.

    The principal is stored on ``g.principal``. Every failure yields the same
    401 response.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        principal = session_service().validate_access(bearer_token())
        if principal is None:
            raise Unauthorized()
        g.principal = principal
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_principal() -> PrincipalOut:
    """Return the principal loaded by :func:`require_auth`."""

    principal: PrincipalOut | None = g.get("principal")
    if principal is None:
        raise Unauthorized()
    return principal


def service_errors(func: F) -> F:
    """Translate service-layer errors into API errors."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise BaseService.translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
