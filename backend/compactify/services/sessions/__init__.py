"""Session and identity lifecycle service and DTOs."""

from __future__ import annotations

from .dto import IdentityAssertion, PrincipalOut, SessionPairOut, SessionTokenConfig
from .service import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, SessionService

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "IdentityAssertion",
    "PrincipalOut",
    "SessionPairOut",
    "SessionService",
    "SessionTokenConfig",
]
