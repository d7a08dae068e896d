from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sqlalchemy.orm import Session

from compactify.models.link import Link
from compactify.repositories.base import Page, Pagination


class LinkStore(Protocol):
    """Durable link storage used by the link lifecycle.

    Implementations must enforce short-code uniqueness at insert time and
    run the click increment and sweep statements as single conditional
    writes.
    """

    session: Session

    def add(self, instance: Link) -> Link: ...
    def get(self, entity_id: int) -> Link | None: ...
    def get_for_update(self, entity_id: int) -> Link | None: ...
    def get_by_code(self, code: str) -> Link | None: ...
    def exists_by_code(self, code: str) -> bool: ...
    def count_for_owner(self, owner_id: int) -> int: ...
    def total_clicks_for_owner(self, owner_id: int) -> int: ...
    def update(self, instance: Link, **fields: object) -> Link: ...
    def delete(self, instance: Link) -> None: ...

    def list_for_owner(
        self,
        owner_id: int,
        pagination: Pagination,
        *,
        now: datetime,
        state: str = "all",
        search: str | None = None,
    ) -> Page[Link]: ...

    def increment_clicks(self, code: str, *, now: datetime) -> int: ...
    def delete_expired_anonymous(self, now: datetime) -> int: ...
    def deactivate_expired_owned(self, now: datetime) -> int: ...
    def delete_all_for_owner(self, owner_id: int) -> int: ...
