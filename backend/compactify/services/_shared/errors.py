"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic**: they never import Flask or
HTTP concerns. They are stable contracts between repositories, adapters and
application services. Translation to HTTP responses (RFC 7807) happens in
:meth:`compactify.services._shared.base.BaseService.translate_exceptions`.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, *hints: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite only reports the columns
    (``UNIQUE constraint failed: links.short_code``), which callers pass as
    ``hints``.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        Name of the database constraint (e.g. ``uq_links_short_code``).
    *hints : str
        Extra substrings that identify the same violation on other dialects.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return any(token.lower() in message for token in (constraint_name, *hints))


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API boundary translates them into ``APIError`` instances.
    """


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is absent (or not visible to the caller).

    :param entity: Entity name (e.g., "Link").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ExpiredError(ServiceError):
    """
    Raised when a link is resolved at or after its expiry instant.

    :param entity: Entity name.
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} expired: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Principal").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class InvalidInputError(ServiceError):
    """User-correctable input problem; the message is safe to show verbatim."""


class InvalidUrlError(InvalidInputError):
    """Original URL is malformed, uses a non-http(s) scheme or is too long."""


class InvalidExpiryError(InvalidInputError):
    """Requested expiry is not strictly in the future."""


@dataclass(slots=True)
class QuotaExceededError(ServiceError):
    """
    Raised when an owner already holds the maximum number of links.

    :param limit: Configured per-owner quota.
    """

    limit: int

    def __str__(self) -> str:
        return (
            f"Link limit reached ({self.limit}). "
            "Delete an existing link before creating a new one."
        )


@dataclass(slots=True)
class CodeExhaustedError(ServiceError):
    """
    Raised when no free short code was found within the attempt budget.

    :param attempts: Number of candidates tried.
    """

    attempts: int

    def __str__(self) -> str:
        return (
            f"Could not allocate a unique short code after {self.attempts} attempts. "
            "Please try again."
        )


class AuthenticationError(ServiceError):
    """
    Raised for any invalid, expired, mismatched or revoked token.

    Deliberately carries no detail so callers cannot tell the causes apart.
    """

    def __init__(self) -> None:
        super().__init__("Authentication required")


class IdentityProviderError(ServiceError):
    """Raised when an OAuth provider rejects the exchange or omits identity data."""


@dataclass(slots=True)
class RateLimitError(ServiceError):
    """
    Raised when an upstream (an OAuth provider) throttles us.

    :param retry_after: Seconds the upstream asked us to wait, when known.
    """

    retry_after: int | None = None

    def __str__(self) -> str:
        return "Too many requests. Please try again later."
