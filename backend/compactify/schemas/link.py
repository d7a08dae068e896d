"""Link Marshmallow schemas."""

from __future__ import annotations

from datetime import UTC

from marshmallow import fields, validate

from .common import BaseSchema

SORT_KEYS = ("createdAt", "expiresAt", "clickCount")
SORT_ORDERS = ("asc", "desc")
STATE_FILTERS = ("all", "active", "expired")


class LinkCreateAnonymousSchema(BaseSchema):
    """Payload for shortening a URL without signing in."""

    original_url = fields.String(required=True, validate=validate.Length(min=1))


class LinkCreateSchema(LinkCreateAnonymousSchema):
    """Payload for shortening a URL as the signed-in principal."""

    expires_at = fields.AwareDateTime(default_timezone=UTC, load_default=None, allow_none=True)


class LinkExtendSchema(BaseSchema):
    """Payload for moving a link's expiry."""

    expires_at = fields.AwareDateTime(default_timezone=UTC, required=True)


class LinkListQuerySchema(BaseSchema):
    """Dashboard query string."""

    page = fields.Integer(load_default=1, validate=validate.Range(min=1))
    limit = fields.Integer(
        load_default=10,
        validate=validate.Range(min=1, max=100, error="Limit cannot exceed 100"),
    )
    sort_by = fields.String(
        load_default="createdAt",
        validate=validate.OneOf(SORT_KEYS, error="Sort field must be one of: {choices}"),
    )
    sort_order = fields.String(
        load_default="desc",
        validate=validate.OneOf(SORT_ORDERS, error="Sort order must be either asc or desc"),
    )
    filter = fields.String(
        load_default="all",
        validate=validate.OneOf(STATE_FILTERS, error="Filter must be one of: {choices}"),
    )
    search = fields.String(load_default="")


class LinkSchema(BaseSchema):
    """Serialize a link for API responses."""

    id = fields.Integer(required=True)
    original_url = fields.String(required=True)
    short_code = fields.String(required=True)
    short_url = fields.String(required=True)
    expires_at = fields.DateTime(allow_none=True)
    is_active = fields.Boolean(required=True)
    click_count = fields.Integer(required=True)
    is_anonymous = fields.Boolean(required=True)
    created_at = fields.DateTime(required=True)


class LinkStatsSchema(BaseSchema):
    """Aggregates over every link of the owner."""

    total_clicks = fields.Integer(required=True)
