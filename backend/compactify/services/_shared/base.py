from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from compactify.core import errors as api_errors
from compactify.repositories.base import Pagination
from compactify.services._shared.errors import (
    AuthenticationError,
    CodeExhaustedError,
    ConflictError,
    ExpiredError,
    InvalidInputError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    ServiceError,
)
from compactify.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param actor_id: Authenticated principal identifier.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Offer shared validation helpers (pagination/sorting).
    * Own the clock so time-dependent rules are testable.

    Notes
    -----
    Services never touch the global session directly; they always go through
    a Unit of Work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context.
        :param clock: Callable returning an aware UTC ``datetime``.
        """
        self.ctx = ctx or ServiceContext()
        self._clock: Clock = clock or now_utc

    def now(self) -> datetime:
        return self._clock()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork()

    # ----------------------- Validation utilities ---------------------------

    def ensure_pagination(
        self, *, page: int, limit: int, sort: list[str] | None = None, max_limit: int = 100
    ) -> Pagination:
        """
        Build a Pagination value object with basic clamping.

        :param page: 1-based page number.
        :param limit: Page size, clamped to ``[1, max_limit]``.
        :param sort: Sort tokens like ``["-created_at"]``.
        :returns: Pagination instance.
        """
        page = max(1, int(page))
        limit = min(max(1, int(limit)), max_limit)
        return Pagination(page=page, limit=limit, sort=list(sort or []))

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Missing and expired resources fold into a generic 400 so callers
        cannot probe for other principals' ids; the public redirect path
        handles them itself.

        :param exc: Exception raised within the service.
        :returns: Translated exception ready to be re-raised.
        """
        if isinstance(exc, NotFoundError | ExpiredError):
            return api_errors.APIError("Request could not be completed", status_code=400)

        if isinstance(exc, InvalidInputError):
            return api_errors.APIError(str(exc), status_code=400, code="invalid_input")

        if isinstance(exc, QuotaExceededError):
            return api_errors.Forbidden(str(exc), code="quota_exceeded")

        if isinstance(exc, CodeExhaustedError):
            return api_errors.ServiceUnavailable(str(exc), code="code_space_exhausted")

        if isinstance(exc, AuthenticationError):
            return api_errors.Unauthorized()

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, RateLimitError):
            details = {"retry_after": exc.retry_after} if exc.retry_after is not None else None
            return api_errors.APIError(
                str(exc), status_code=429, code="too_many_requests", details=details
            )

        if isinstance(exc, ServiceError):
            return api_errors.APIError(str(exc), status_code=400)

        return exc
