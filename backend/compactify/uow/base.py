"""Unit of Work contract the link and session services program against."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from compactify.services._shared.ports import CredentialStore, LinkStore


class UnitOfWork(ABC):
    """
    One transaction shared by the ``links`` and ``principals`` stores.

    A quota check, a code allocation and the insert that follows all see the
    same snapshot and commit or roll back together.
    """

    links: LinkStore
    principals: CredentialStore

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
