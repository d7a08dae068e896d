from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from compactify.services._shared.errors import AuthenticationError
from compactify.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Tokens carry the library's ``sub``, ``type``, ``exp`` and ``jti`` claims.
    The subject is always stringified.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(self, *, identity: int | str, expires_delta: timedelta) -> str:
        return cast(
            str,
            create_access_token(identity=str(identity), expires_delta=expires_delta),
        )

    def create_refresh_token(self, *, identity: int | str, expires_delta: timedelta) -> str:
        return cast(
            str,
            create_refresh_token(identity=str(identity), expires_delta=expires_delta),
        )

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], decode_token(token))
        except (jwt.PyJWTError, JWTExtendedException) as exc:
            raise AuthenticationError() from exc
