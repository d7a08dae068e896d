"""Principal model: an account resolved from a third-party OAuth identity."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from compactify.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .link import Link


class Provider(str, enum.Enum):
    """Closed set of OAuth identity providers."""

    GOOGLE = "GOOGLE"
    GITHUB = "GITHUB"

    @classmethod
    def parse(cls, raw: str) -> Provider:
        """Return the member matching ``raw`` case-insensitively.

        :raises ValueError: If ``raw`` names no supported provider.
        """
        try:
            return cls(raw.strip().upper())
        except ValueError as exc:
            raise ValueError(f"Unsupported provider: {raw!r}") from exc


class Principal(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authenticated account.

    Fields
    ------
    email : str
        Stored normalized (lowercase, trimmed). Unique.
    display_name : str | None
        Name reported by the provider on the latest login.
    provider : Provider
        Provider whose identity is currently linked.
    external_id : str
        Provider-assigned subject id. Unique per provider.
    refresh_token_hash : str | None
        One-way hash of the single live refresh token. ``None`` after logout.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    provider: Mapped[Provider] = mapped_column(
        Enum(Provider, name="auth_provider", native_enum=False, length=16),
        nullable=False,
    )
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    links: Mapped[list[Link]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("provider", "external_id", name="uq_users_provider_external_id"),
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("display_name")
    def _normalize_display_name(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        v = value.strip()
        return v[:100] or None
