"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from compactify.repositories.base import (
    BaseRepository,
    Page,
    Pagination,
    apply_sorting,
    paginate,
)
from compactify.repositories.link import LinkRepository
from compactify.repositories.principal import PrincipalRepository

__all__ = [
    "BaseRepository",
    "Page",
    "Pagination",
    "apply_sorting",
    "paginate",
    "LinkRepository",
    "PrincipalRepository",
]
