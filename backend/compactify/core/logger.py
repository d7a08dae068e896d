"""
JSON-lines logging with a per-request correlation id.

Every record carries ``request_id``. Inside a request it is taken from
``X-Request-ID`` / ``X-Correlation-ID`` when the caller sent a usable one,
otherwise a UUID4 is minted; the same id is echoed back on the response and
stamped into problem+json bodies.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
# Kept in the WSGI environ: ``g`` outlives the request under a pushed app context.
_ENVIRON_KEY = "compactify.request_id"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Inbound ids are echoed in headers and logs; anything else is replaced.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# ``extra=`` keys emitted as top-level fields.
EXTRA_KEYS = (
    "endpoint",
    "elapsed_ms",
    "short_code",
    "link_id",
    "principal_id",
    "provider",
    "attempt",
    "deleted",
    "deactivated",
)

# Chatty libraries pinned to WARNING regardless of the app level.
_NOISY_LOGGERS = ("urllib3", "werkzeug")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            {key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on records (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _inbound_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value and _SAFE_REQUEST_ID.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """Return the id of the current request, assigning one on first use.

    Outside a request context a fresh id is returned on every call.
    """
    if not has_request_context():
        return str(uuid4())
    request_id = request.environ.get(_ENVIRON_KEY)
    if request_id is None:
        request_id = _inbound_request_id() or str(uuid4())
        request.environ[_ENVIRON_KEY] = request_id
    return request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Send root logging to stdout as JSON lines at ``level``."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def init_app(app: Flask) -> None:
    """Assign request ids early and echo them on every response."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _assign_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = [
    "EXTRA_KEYS",
    "JSONFormatter",
    "RequestIdFilter",
    "configure_logging",
    "ensure_request_id",
    "init_app",
]
