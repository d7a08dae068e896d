"""Link model: a short code pointing at an original URL."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from compactify.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime, utcnow

if TYPE_CHECKING:
    from .principal import Principal


@dataclass(frozen=True, slots=True)
class Anonymous:
    """Ownership of a link created without a principal."""


@dataclass(frozen=True, slots=True)
class OwnedBy:
    """Ownership of a link created by ``principal_id``."""

    principal_id: int


Ownership = Anonymous | OwnedBy


class Link(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Shortened URL.

    Fields
    ------
    original_url : str
        Target of the redirect (http/https).
    short_code : str
        Public code; unique across all links.
    owner_id : int | None
        Owning principal; ``None`` for anonymous links.
    expires_at : datetime | None
        Expiry instant (UTC). ``None`` means permanent, owned links only.
    is_active : bool
        Cleared by the sweep once an owned link expires; set again on extend.
    click_count : int
        Successful resolutions. Never decreases.
    """

    __tablename__ = "links"

    original_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    short_code: Mapped[str] = mapped_column(String(32), nullable=False)
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    click_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    owner: Mapped[Principal | None] = relationship(back_populates="links")

    __table_args__ = (
        UniqueConstraint("short_code", name="uq_links_short_code"),
        CheckConstraint("click_count >= 0", name="click_count_non_negative"),
        CheckConstraint(
            "owner_id IS NOT NULL OR expires_at IS NOT NULL",
            name="anonymous_requires_expiry",
        ),
        Index("ix_links_owner_id", "owner_id"),
        Index("ix_links_expires_at", "expires_at"),
    )

    @property
    def ownership(self) -> Ownership:
        """Return :class:`Anonymous` or :class:`OwnedBy` for this link."""
        if self.owner_id is None:
            return Anonymous()
        return OwnedBy(principal_id=self.owner_id)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return ``True`` when the expiry instant is at or before ``now``."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())
