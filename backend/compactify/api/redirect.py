"""Public short-link redirect, mounted at the site root.

Responses here are plain text, not problem+json: this is the path browsers
follow directly.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, redirect
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from compactify.api.deps import link_service
from compactify.core.extensions import limiter
from compactify.services._shared.errors import ExpiredError, NotFoundError

bp = Blueprint("redirect", __name__)

log = logging.getLogger(__name__)


def _redirect_rate_limit() -> str:
    return str(current_app.config.get("REDIRECT_RATE_LIMIT", "120 per minute"))


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, mimetype="text/plain")


@bp.get("/<string:code>")
@limiter.limit(_redirect_rate_limit)
def follow(code: str):
    """302 to the original URL and count the click."""

    try:
        resolved = link_service().resolve(code)
    except (NotFoundError, ExpiredError):
        return _text("Short URL not found", 404)
    return redirect(resolved.original_url, code=302)


@bp.errorhandler(HTTPException)
def _handle_http_error(err: HTTPException):
    status = int(err.code or 500)
    return _text(err.name if status < 500 else "Internal Server Error", status)


# Registered for the database errors too: the app-level problem+json
# handlers for those classes would otherwise win the lookup.
@bp.errorhandler(IntegrityError)
@bp.errorhandler(OperationalError)
@bp.errorhandler(Exception)
def _handle_unexpected(err: Exception):
    log.error("Redirect failed", exc_info=err)
    return _text("Internal Server Error", 500)
