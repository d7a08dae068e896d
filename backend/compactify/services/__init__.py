"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`compactify.services` without knowing internal
structure.

Re-exports
----------
- Base primitives (from ``compactify.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Link lifecycle (from ``compactify.services.links``)
    * :class:`LinkService`, :class:`LinkPolicy`
    * DTOs: :class:`LinkListIn`, :class:`LinkOut`, :class:`LinkListOut`,
      :class:`ResolvedLinkOut`, :class:`SweepResult`

- Session lifecycle (from ``compactify.services.sessions``)
    * :class:`SessionService`, :class:`SessionTokenConfig`
    * DTOs: :class:`IdentityAssertion`, :class:`PrincipalOut`,
      :class:`SessionPairOut`

- Short codes (from ``compactify.services.codes``)
    * :class:`CodeGenerator`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .codes import CodeGenerator
from .links import (
    LinkListIn,
    LinkListOut,
    LinkOut,
    LinkPolicy,
    LinkService,
    ResolvedLinkOut,
    SweepResult,
)
from .sessions import (
    IdentityAssertion,
    PrincipalOut,
    SessionPairOut,
    SessionService,
    SessionTokenConfig,
)

__all__ = [
    "BaseService",
    "CodeGenerator",
    "IdentityAssertion",
    "LinkListIn",
    "LinkListOut",
    "LinkOut",
    "LinkPolicy",
    "LinkService",
    "PrincipalOut",
    "ResolvedLinkOut",
    "ServiceContext",
    "SessionPairOut",
    "SessionService",
    "SessionTokenConfig",
    "SweepResult",
]
