"""Short-link lifecycle service and DTOs."""

from __future__ import annotations

from .dto import (
    SORT_FIELDS,
    LinkListIn,
    LinkListOut,
    LinkOut,
    LinkPolicy,
    ResolvedLinkOut,
    SweepResult,
)
from .service import LinkService

__all__ = [
    "SORT_FIELDS",
    "LinkListIn",
    "LinkListOut",
    "LinkOut",
    "LinkPolicy",
    "LinkService",
    "ResolvedLinkOut",
    "SweepResult",
]
