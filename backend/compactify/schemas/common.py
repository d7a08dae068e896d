"""Common Marshmallow schemas shared across resources."""

from __future__ import annotations

from marshmallow import Schema, fields


class BaseSchema(Schema):
    """Base schema enabling ordered output for consistent API responses."""

    class Meta:
        ordered = True


class MetaSchema(Schema):
    """Metadata block for paginated responses."""

    total = fields.Integer(required=True)
    page = fields.Integer(required=True)
    limit = fields.Integer(required=True)
    pages = fields.Integer(required=True)

