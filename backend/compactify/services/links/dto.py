from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Literal

SortKey = Literal["createdAt", "expiresAt", "clickCount"]
SortDir = Literal["asc", "desc"]
StateFilter = Literal["all", "active", "expired"]

# Public sort keys -> repository sort fields.
SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "expiresAt": "expires_at",
    "clickCount": "click_count",
}


# ------------------------------- Policy ----------------------------------- #


@dataclass(frozen=True, slots=True)
class LinkPolicy:
    """
    Tunables of the link lifecycle.

    :param anon_ttl: Lifetime of anonymous links.
    :param max_links_per_owner: Quota of links one principal may own.
    :param code_length: Characters per short code.
    :param max_code_retries: Candidates tried before giving up.
    :param max_url_length: Longest accepted original URL.
    :param public_base_url: Prefix of the public short URL.
    """

    anon_ttl: timedelta = timedelta(days=30)
    max_links_per_owner: int = 50
    code_length: int = 8
    max_code_retries: int = 5
    max_url_length: int = 2048
    public_base_url: str = "http://localhost:8000"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> LinkPolicy:
        """Build a policy from a Flask config mapping, keeping defaults for gaps."""
        defaults = cls()
        return cls(
            anon_ttl=config.get("ANON_LINK_TTL", defaults.anon_ttl),
            max_links_per_owner=int(config.get("MAX_LINKS_PER_OWNER", defaults.max_links_per_owner)),
            code_length=int(config.get("SHORT_CODE_LENGTH", defaults.code_length)),
            max_code_retries=int(config.get("MAX_CODE_RETRIES", defaults.max_code_retries)),
            max_url_length=int(config.get("MAX_URL_LENGTH", defaults.max_url_length)),
            public_base_url=str(config.get("PUBLIC_BASE_URL", defaults.public_base_url)),
        )

    def short_url(self, code: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{code}"


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LinkListIn:
    """
    Dashboard query for one owner.

    :param owner_id: Principal whose links are listed.
    :param page: 1-based page number.
    :param page_size: Items per page.
    :param sort_key: One of :data:`SORT_FIELDS`.
    :param sort_dir: ``asc`` or ``desc``.
    :param search: Case-insensitive substring of the original URL.
    :param state: ``all``, ``active`` or ``expired``.
    """

    owner_id: int
    page: int = 1
    page_size: int = 10
    sort_key: SortKey = "createdAt"
    sort_dir: SortDir = "desc"
    search: str | None = None
    state: StateFilter = "all"


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LinkOut:
    """Public projection of a link."""

    id: int
    original_url: str
    short_code: str
    short_url: str
    expires_at: datetime | None
    is_active: bool
    click_count: int
    is_anonymous: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class LinkListOut:
    """One dashboard page plus totals across every link of the owner."""

    items: list[LinkOut]
    total: int
    page: int
    page_size: int
    pages: int
    total_clicks: int


@dataclass(frozen=True, slots=True)
class ResolvedLinkOut:
    """Redirect target of a resolved code."""

    short_code: str
    original_url: str


@dataclass(frozen=True, slots=True)
class SweepResult:
    """Row counts touched by one sweep run."""

    deleted: int
    deactivated: int
