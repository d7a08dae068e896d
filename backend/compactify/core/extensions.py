"""Extension singletons shared by the app, the CLI and the Celery worker."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Constraint names are matched by the services (``uq_links_short_code``),
# so they must stay stable across dialects and migrations.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

db: SQLAlchemy = SQLAlchemy(
    session_options={"autoflush": False},
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

# Optional: sweep lock and health probe. ``None`` when REDIS_URL is unset.
redis_client: redis.Redis | None = None


def _init_redis(app: Flask) -> None:
    global redis_client

    url = app.config.get("REDIS_URL")
    if not url:
        redis_client = None
        app.extensions.pop("redis_client", None)
        return

    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {url!r}") from exc
    redis_client = client
    app.extensions["redis_client"] = client


def init_app(app: Flask) -> None:
    """Bind every extension to ``app``.

    Parameters
    ----------
    app: flask.Flask
        Application being built. Importing :mod:`compactify.models` here
        registers the ``users`` and ``links`` tables on the metadata that
        Flask-Migrate autogenerates against.
    """
    db.init_app(app)

    from compactify import models as _models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    _init_redis(app)
