"""Repository base plus the paging and sorting helpers the link dashboard uses.

Repositories only read and stage writes. Transactions belong to the Unit of
Work, so nothing here commits or rolls back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from compactify.core.extensions import db

E = TypeVar("E")


@dataclass(slots=True)
class Pagination:
    """Requested window.

    :param page: 1-based page number.
    :param limit: Page size.
    :param sort: Sort tokens, ``"-"`` prefix for descending
        (``["-click_count"]``).
    """

    page: int
    limit: int
    sort: list[str]


@dataclass(slots=True)
class Page(Generic[E]):
    items: Sequence[E]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        """Page count, never below ``1`` so an empty dashboard has one page."""
        return max(1, -(-self.total // max(self.limit, 1)))


def parse_sort_tokens(raw: Iterable[str]) -> list[tuple[str, bool]]:
    """Split ``"-field"`` tokens into ``(field, descending)`` pairs."""
    parsed: list[tuple[str, bool]] = []
    for token in raw:
        descending = token.startswith("-")
        field = token.lstrip("-").strip()
        if field:
            parsed.append((field, descending))
    return parsed


def _is_nullable(attr: InstrumentedAttribute[Any]) -> bool:
    columns = getattr(attr.property, "columns", ())
    return bool(columns) and bool(columns[0].nullable)


def apply_sorting(
    stmt: Select[Any],
    sortable_fields: Mapping[str, InstrumentedAttribute[Any]],
    tokens: Iterable[str],
    *,
    pk_attr: InstrumentedAttribute[Any] | None,
) -> Select[Any]:
    """Order ``stmt`` by whitelisted fields only.

    Unknown fields are skipped. ``NULL`` in a nullable column sorts as the
    largest value, so a link that never expires comes after every dated
    one in ascending order and before them in descending order, on every
    dialect. The primary key breaks ties in the direction of the last
    applied token so offsets stay stable between pages.
    """
    orders: list[Any] = []
    last_desc = False
    for field, descending in parse_sort_tokens(tokens):
        col = sortable_fields.get(field)
        if col is None:
            continue
        if _is_nullable(col):
            missing = col.is_(None)
            orders.append(missing.desc() if descending else missing.asc())
        orders.append(col.desc() if descending else col.asc())
        last_desc = descending

    if pk_attr is not None:
        orders.append(pk_attr.desc() if last_desc else pk_attr.asc())
    return stmt.order_by(*orders) if orders else stmt


def paginate(session: Session, stmt: Select[Any], pagination: Pagination) -> Page[Any]:
    """Run ``stmt`` for one page and count the unpaged rows.

    The count query drops ``ORDER BY``; page and limit are clamped to
    ``>= 1``.
    """
    page = max(int(pagination.page), 1)
    limit = max(int(pagination.limit), 1)

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int(session.execute(count_stmt).scalar_one())

    window = stmt.limit(limit).offset((page - 1) * limit)
    items = list(session.execute(window).scalars().all())
    return Page(items=items, total=total, page=page, limit=limit)


class BaseRepository(Generic[E]):
    """Single-model repository.

    Subclasses set ``model`` and whitelist what callers may sort on
    (``_sortable_fields``) and assign through :meth:`update`
    (``_updatable_fields``).
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """The injected session, else Flask-SQLAlchemy's scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        pk = getattr(self.model, "id", None)
        if pk is None:
            raise RuntimeError(f"{self.model.__name__} has no 'id' column.")
        return pk

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {}

    def _updatable_fields(self) -> set[str]:
        return set()

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        stmt = select(self.model).where(self._pk_attr() == entity_id)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """Like :meth:`get` but takes a row lock (``FOR UPDATE``) where supported."""
        stmt = select(self.model).where(self._pk_attr() == entity_id).with_for_update()
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    def update(self, instance: E, **fields: Any) -> E:
        """Assign whitelisted ``fields`` and flush.

        Assignment goes through ``setattr`` so model ``@validates`` hooks run.

        :raises ValueError: If a field is not whitelisted.
        """
        unknown = sorted(set(fields) - self._updatable_fields())
        if unknown:
            raise ValueError(f"Fields not updatable on {self.model.__name__}: {unknown}")
        for name, value in fields.items():
            setattr(instance, name, value)
        self.flush()
        return instance
