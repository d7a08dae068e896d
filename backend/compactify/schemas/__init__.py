"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import AuthStatusSchema, PrincipalSchema, SessionSchema
from .common import BaseSchema, MetaSchema
from .link import (
    LinkCreateAnonymousSchema,
    LinkCreateSchema,
    LinkExtendSchema,
    LinkListQuerySchema,
    LinkSchema,
    LinkStatsSchema,
)

__all__ = [
    "AuthStatusSchema",
    "PrincipalSchema",
    "SessionSchema",
    "BaseSchema",
    "MetaSchema",
    "LinkCreateAnonymousSchema",
    "LinkCreateSchema",
    "LinkExtendSchema",
    "LinkListQuerySchema",
    "LinkSchema",
    "LinkStatsSchema",
]
