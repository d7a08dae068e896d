"""Construct configured services from a Flask-style config mapping."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from compactify.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from compactify.services._shared.base import ServiceContext
from compactify.services.links import LinkPolicy, LinkService
from compactify.services.sessions import SessionService, SessionTokenConfig


def build_link_service(
    config: Mapping[str, Any], *, ctx: ServiceContext | None = None
) -> LinkService:
    return LinkService(policy=LinkPolicy.from_config(config), ctx=ctx)


def build_session_service(
    config: Mapping[str, Any], *, ctx: ServiceContext | None = None
) -> SessionService:
    """Session service signing tokens through Flask-JWT-Extended.

    The returned service needs an app context whenever it mints or decodes.
    """
    return SessionService(
        token_provider=JWTTokenProvider(),
        token_cfg=SessionTokenConfig.from_config(config),
        ctx=ctx,
    )
