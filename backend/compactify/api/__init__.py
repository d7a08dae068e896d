"""HTTP surface: the versioned JSON API plus the public redirect at ``/``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def _join_prefix(*segments: str) -> str:
    parts = [s.strip("/") for s in segments if s.strip("/")]
    return "/" + "/".join(parts)


def register_blueprint_group(
    app: Flask,
    *,
    base_prefix: str,
    entries: Iterable[tuple[Blueprint, str]],
) -> None:
    """Mount ``(blueprint, relative_prefix)`` pairs under ``base_prefix``.

    An empty relative prefix mounts the blueprint at ``base_prefix`` itself
    (``/api/v1/health`` comes from the health blueprint mounted at ``""``).
    """
    for bp, rel_prefix in entries:
        app.register_blueprint(bp, url_prefix=_join_prefix(base_prefix, rel_prefix))


def init_app(app: Flask) -> None:
    """Register ``/api/v1`` and then the root-level ``/<code>`` redirect."""

    from compactify.api.redirect import bp as redirect_bp
    from compactify.api.v1 import API_VERSION, REGISTRY

    api_base = app.config.get("API_BASE_PREFIX", "/api")
    register_blueprint_group(app, base_prefix=_join_prefix(api_base, API_VERSION), entries=REGISTRY)
    app.register_blueprint(redirect_bp)


__all__ = ["init_app", "register_blueprint_group"]
