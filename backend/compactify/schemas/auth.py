"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import fields

from .common import BaseSchema


class PrincipalSchema(BaseSchema):
    """Public principal fields."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    display_name = fields.String(allow_none=True)
    provider = fields.String(required=True)
    created_at = fields.DateTime(allow_none=True)


class SessionSchema(BaseSchema):
    """Access token handed to the browser; the refresh token stays in the cookie."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(attribute="access_expires_in", required=True)
    principal = fields.Nested(PrincipalSchema, required=True)


class AuthStatusSchema(BaseSchema):
    """Whether the refresh cookie still maps to a live session."""

    is_authenticated = fields.Boolean(required=True)
    principal = fields.Nested(PrincipalSchema, allow_none=True)
