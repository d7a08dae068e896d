"""Link repository: code lookups, owner queries and bulk expiry statements."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, cast

from sqlalchemy import delete, func, or_, select, update

from compactify.models.link import Link
from compactify.repositories.base import BaseRepository, Page, Pagination, apply_sorting, paginate

StateFilter = Literal["all", "active", "expired"]


def _escape_like(term: str) -> str:
    """Escape ``LIKE`` wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class LinkRepository(BaseRepository[Link]):
    """Persistence-only repository for :class:`Link`.

    Every statement that must not race (click increment, sweep) is a single
    ``UPDATE``/``DELETE`` whose ``WHERE`` clause re-checks the condition.
    """

    model = Link

    def _sortable_fields(self):
        return {
            "created_at": Link.created_at,
            "expires_at": Link.expires_at,
            "click_count": Link.click_count,
        }

    def _updatable_fields(self):
        return {"expires_at", "is_active", "short_code"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_code(self, code: str) -> Link | None:
        stmt = select(Link).where(Link.short_code == code)
        return cast(Link | None, self.session.execute(stmt).scalars().first())

    def exists_by_code(self, code: str) -> bool:
        stmt = select(Link.id).where(Link.short_code == code).limit(1)
        return self.session.execute(stmt).first() is not None

    def count_for_owner(self, owner_id: int) -> int:
        stmt = select(func.count(Link.id)).where(Link.owner_id == owner_id)
        return int(self.session.execute(stmt).scalar_one())

    def total_clicks_for_owner(self, owner_id: int) -> int:
        stmt = select(func.coalesce(func.sum(Link.click_count), 0)).where(
            Link.owner_id == owner_id
        )
        return int(self.session.execute(stmt).scalar_one())

    # ------------------------------- Listing --------------------------------

    def list_for_owner(
        self,
        owner_id: int,
        pagination: Pagination,
        *,
        now: datetime,
        state: StateFilter = "all",
        search: str | None = None,
    ) -> Page[Link]:
        """Page through an owner's links.

        :param state: ``active`` keeps flagged-active links whose expiry is
            absent or in the future; ``expired`` keeps the complement.
        :param search: Case-insensitive substring matched on the original URL.
        """
        stmt = select(Link).where(Link.owner_id == owner_id)

        not_expired = or_(Link.expires_at.is_(None), Link.expires_at > now)
        if state == "active":
            stmt = stmt.where(Link.is_active.is_(True), not_expired)
        elif state == "expired":
            stmt = stmt.where(or_(Link.is_active.is_(False), Link.expires_at <= now))

        if search:
            stmt = stmt.where(Link.original_url.ilike(f"%{_escape_like(search)}%", escape="\\"))

        stmt = apply_sorting(stmt, self._sortable_fields(), pagination.sort, pk_attr=Link.id)
        return paginate(self.session, stmt, pagination)

    # ---------------------------- Atomic updates ----------------------------

    def increment_clicks(self, code: str, *, now: datetime) -> int:
        """Add one click to ``code`` unless it vanished or expired meanwhile.

        :returns: ``1`` when counted, ``0`` when the row no longer qualifies.
        """
        stmt = (
            update(Link)
            .where(
                Link.short_code == code,
                or_(Link.expires_at.is_(None), Link.expires_at > now),
            )
            .values(click_count=Link.click_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_expired_anonymous(self, now: datetime) -> int:
        stmt = (
            delete(Link)
            .where(Link.owner_id.is_(None), Link.expires_at <= now)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def deactivate_expired_owned(self, now: datetime) -> int:
        stmt = (
            update(Link)
            .where(
                Link.owner_id.is_not(None),
                Link.is_active.is_(True),
                Link.expires_at <= now,
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def delete_all_for_owner(self, owner_id: int) -> int:
        stmt = (
            delete(Link)
            .where(Link.owner_id == owner_id)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)
