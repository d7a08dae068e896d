from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from compactify.models.principal import Provider

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IdentityAssertion:
    """
    Identity vouched for by an OAuth provider.

    :param email: Email reported by the provider.
    :param provider: Provider that issued the assertion.
    :param external_id: Provider-assigned account id.
    :param display_name: Optional human name.
    :param email_verified: Whether the provider verified ``email``.
    """

    email: str
    provider: Provider
    external_id: str
    display_name: str | None = None
    email_verified: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class PrincipalOut:
    """Public fields of a principal."""

    id: int
    email: str
    display_name: str | None
    provider: str
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class SessionPairOut:
    """
    Freshly minted session.

    :param access_token: Short-lived bearer token.
    :param refresh_token: Long-lived rotating token (cookie only).
    :param access_expires_in: Access lifetime in seconds.
    :param refresh_expires_in: Refresh lifetime in seconds.
    :param principal: Owner of the session.
    """

    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int
    principal: PrincipalOut


# ------------------------------ Config ------------------------------------ #


@dataclass(frozen=True, slots=True)
class SessionTokenConfig:
    """
    Token lifetimes and refresh-hash settings.

    :param access_ttl: Access token lifetime.
    :param refresh_ttl: Refresh token lifetime.
    :param hash_method: Werkzeug hash method for the stored refresh secret.
    :param link_requires_verified_email: Refuse merging a new provider into
        an existing account by email unless the provider verified it.
    """

    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=7)
    hash_method: str = "scrypt"
    link_requires_verified_email: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SessionTokenConfig:
        defaults = cls()
        return cls(
            access_ttl=config.get("ACCESS_TOKEN_TTL", defaults.access_ttl),
            refresh_ttl=config.get("REFRESH_TOKEN_TTL", defaults.refresh_ttl),
            hash_method=str(config.get("REFRESH_TOKEN_HASH_METHOD", defaults.hash_method)),
            link_requires_verified_email=bool(
                config.get(
                    "OAUTH_LINK_REQUIRES_VERIFIED_EMAIL", defaults.link_requires_verified_email
                )
            ),
        )
