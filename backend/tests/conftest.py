"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from compactify.core.config import TestingConfig
from compactify.core.extensions import db as _db  # Flask-SQLAlchemy instance
from compactify.factory import create_app  # application factory under test


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Registers both OAuth providers; tests swap in fakes before use.
    - Avoids hitting external services.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    GOOGLE_CLIENT_ID = "google-client"
    GOOGLE_CLIENT_SECRET = "google-secret"
    GITHUB_CLIENT_ID = "github-client"
    GITHUB_CLIENT_SECRET = "github-secret"
    PUBLIC_BASE_URL = "http://sho.rt"
    FRONTEND_URL = "http://localhost:5173"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Yields
    ------
    sqlalchemy.orm.scoping.scoped_session
        Scoped session bound to the shared connection; automatically rolled
        back after each test.

    Notes
    -----
    The session joins the connection's SAVEPOINT, so ``commit()`` inside
    services releases a savepoint of its own and ``rollback()`` returns to
    it. Nothing escapes the outer transaction, which is rolled back when the
    test ends.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) SAVEPOINT per test
    connection.begin_nested()

    # 3) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True, autoflush=False)
    scoped = scoped_session(SessionFactory)

    # 4) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture()
def client(app, session):
    """Return a test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import FactorySession

    FactorySession.bind(session)
    yield
    FactorySession.bind(None)
