"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from compactify.core.extensions import db
from compactify.repositories import LinkRepository, PrincipalRepository
from compactify.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.principals = PrincipalRepository(session=self.session)
        self.links = LinkRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    Commits on a clean exit, rolls back when the block raises.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on first use.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    ORM flushes are blocked for the duration of the block. When the block
    started the transaction it also ends it with a rollback; when it joined
    an already-running transaction (an outer writer, a test fixture) that
    transaction is left untouched.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)
        self._owns_transaction = False
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        session = self.session
        self._guarded = session() if isinstance(session, scoped_session) else session
        self._owns_transaction = not self._guarded.in_transaction()
        event.listen(self._guarded, "before_flush", _block_flush)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_transaction:
                self.session.rollback()
        finally:
            if self._guarded is not None:
                event.remove(self._guarded, "before_flush", _block_flush)
                self._guarded = None

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()


def _block_flush(session: Session, flush_context: Any, instances: Any) -> None:
    if session.new or session.dirty or session.deleted:
        raise RuntimeError("Read-only UnitOfWork: ORM flush blocked (pending changes present).")
