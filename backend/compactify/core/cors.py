"""CORS configuration helper for API resources."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS


def init_app(app: Flask) -> None:
    """Configure CORS for API endpoints based on application config.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS``, ``FRONTEND_URL`` and
        ``CORS_MAX_AGE`` settings are consulted.

    Notes
    -----
    The refresh cookie only travels on credentialed requests, so the
    frontend origin is always part of the allow-list. A blank or ``"*"``
    ``CORS_ORIGINS`` with no frontend configured allows any origin but
    disables credential support.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip() and o.strip() != "*"]
    frontend = (app.config.get("FRONTEND_URL") or "").rstrip("/")
    if frontend and frontend not in origins:
        origins.append(frontend)
    wildcard = not origins

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
