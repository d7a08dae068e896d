"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from compactify.api.deps import json_response, timing
from compactify.core import extensions

bp = Blueprint("health", __name__)


def _database_status() -> str:
    try:
        extensions.db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        return "fail"
    return "ok"


def _redis_status() -> str:
    client = extensions.redis_client
    if client is None:
        return "disabled"
    try:
        client.ping()
    except RedisError:
        current_app.logger.exception("healthcheck.redis_error")
        return "fail"
    return "ok"


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and Redis health."""

    db_status = _database_status()
    redis_status = _redis_status()
    overall = "ok" if db_status == "ok" and redis_status != "fail" else "degraded"
    payload = {
        "status": overall,
        "db": db_status,
        "redis": redis_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
        "commit": current_app.config.get("APP_COMMIT", "unknown"),
    }
    return json_response(payload, status=200 if overall == "ok" else 503)
