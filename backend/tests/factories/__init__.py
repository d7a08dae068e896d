"""Factory Boy base wired to the per-test SAVEPOINT session.

``conftest._factories_session`` registers the scoped session before every
test; principal and link factories flush into it so generated ids are
available without committing the outer transaction.
"""

from __future__ import annotations

import factory


class FactorySession:
    """Holds the session the current test registered."""

    _session = None

    @classmethod
    def bind(cls, session) -> None:
        cls._session = session

    @classmethod
    def current(cls):
        """Return the bound session.

        Raises
        ------
        RuntimeError
            When a factory runs in a test that did not request ``session``.
        """
        if cls._session is None:
            raise RuntimeError("No factory session bound; request the 'session' fixture.")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Common Meta for every model factory."""

    class Meta:
        abstract = True
        # Resolved per instantiation so each test gets its own session.
        sqlalchemy_session_factory = FactorySession.current
        sqlalchemy_session_persistence = "flush"
