from __future__ import annotations

import logging
from datetime import UTC, datetime
from urllib.parse import urlsplit

from sqlalchemy.exc import IntegrityError

from compactify.models.link import Link
from compactify.services._shared.base import BaseService, Clock, ServiceContext
from compactify.services._shared.errors import (
    CodeExhaustedError,
    ExpiredError,
    InvalidExpiryError,
    InvalidInputError,
    InvalidUrlError,
    NotFoundError,
    QuotaExceededError,
    violates,
)
from compactify.services._shared.policies.common import is_owner
from compactify.services._shared.ports.link_store import LinkStore
from compactify.services.codes.generator import CodeGenerator

from .dto import (
    SORT_FIELDS,
    LinkListIn,
    LinkListOut,
    LinkOut,
    LinkPolicy,
    ResolvedLinkOut,
    SweepResult,
)

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})


class LinkService(BaseService):
    """
    Application service for the short-link lifecycle.

    Responsibilities
    ----------------
    - Create anonymous and owned links with quota, expiry and code allocation.
    - Resolve codes to their target while counting clicks.
    - Extend, regenerate and delete owned links.
    - Page through an owner's links for the dashboard.
    - Sweep expired links: anonymous ones are deleted, owned ones deactivated.

    Notes
    -----
    Code allocation is sequential: each candidate is generated only after the
    previous one was found taken, so retry salts reflect generation time. The
    unique constraint on ``short_code`` stays the final arbiter; a candidate
    that loses an insert race is treated like a taken one.
    """

    def __init__(
        self,
        *,
        policy: LinkPolicy | None = None,
        generator: CodeGenerator | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self.policy = policy or LinkPolicy()
        self.generator = generator or CodeGenerator(length=self.policy.code_length)

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    def create_anonymous(self, original_url: str) -> LinkOut:
        """
        Shorten ``original_url`` without an owner.

        The link expires after :attr:`LinkPolicy.anon_ttl`.

        :raises InvalidUrlError: If the URL is rejected.
        :raises CodeExhaustedError: If no free code was found.
        """
        url = self._validate_url(original_url)
        now = self.now()

        with self.rw_uow() as uow:
            link = Link(original_url=url, expires_at=now + self.policy.anon_ttl)
            self._insert_with_unique_code(uow.links, link)
            logger.info(
                "Anonymous link created",
                extra={"link_id": link.id, "short_code": link.short_code},
            )
            return self._to_out(link)

    def create_owned(
        self,
        original_url: str,
        owner_id: int,
        expires_at: datetime | None = None,
    ) -> LinkOut:
        """
        Shorten ``original_url`` on behalf of ``owner_id``.

        :param expires_at: Optional expiry; ``None`` keeps the link forever.
        :raises NotFoundError: If the principal does not exist.
        :raises QuotaExceededError: If the owner already holds the maximum.
        :raises InvalidExpiryError: If ``expires_at`` is not in the future.
        :raises CodeExhaustedError: If no free code was found.
        """
        url = self._validate_url(original_url)
        now = self.now()

        with self.rw_uow() as uow:
            # Row lock serializes concurrent creations by the same owner.
            principal = uow.principals.get_for_update(owner_id)
            if principal is None:
                raise NotFoundError("Principal", owner_id)

            if uow.links.count_for_owner(owner_id) >= self.policy.max_links_per_owner:
                raise QuotaExceededError(self.policy.max_links_per_owner)

            expiry = self._ensure_future(expires_at, now) if expires_at is not None else None

            link = Link(original_url=url, owner_id=owner_id, expires_at=expiry)
            self._insert_with_unique_code(uow.links, link)
            logger.info(
                "Owned link created",
                extra={"link_id": link.id, "short_code": link.short_code, "principal_id": owner_id},
            )
            return self._to_out(link)

    # ------------------------------------------------------------------ #
    # Resolve
    # ------------------------------------------------------------------ #

    def resolve(self, code: str) -> ResolvedLinkOut:
        """
        Return the target of ``code`` and count one click.

        :raises NotFoundError: If the code is unknown, or vanished before the
            click could be counted.
        :raises ExpiredError: If the link expired; no click is counted.
        """
        now = self.now()
        with self.rw_uow() as uow:
            link = uow.links.get_by_code(code)
            if link is None:
                raise NotFoundError("Link", code)
            if link.is_expired(now):
                raise ExpiredError("Link", code)

            target = link.original_url
            if uow.links.increment_clicks(code, now=now) == 0:
                # Deleted or expired since the read.
                raise NotFoundError("Link", code)

            logger.debug("Link resolved", extra={"short_code": code})
            return ResolvedLinkOut(short_code=code, original_url=target)

    # ------------------------------------------------------------------ #
    # Owner mutations
    # ------------------------------------------------------------------ #

    def extend(self, owner_id: int, link_id: int, new_expires_at: datetime) -> LinkOut:
        """
        Move the expiry of an owned link and reactivate it.

        :raises NotFoundError: If the link is missing or owned by someone else.
        :raises InvalidExpiryError: If ``new_expires_at`` is not in the future.
        """
        now = self.now()
        with self.rw_uow() as uow:
            link = self._owned_link(uow.links, owner_id, link_id)
            expiry = self._ensure_future(new_expires_at, now)
            uow.links.update(link, expires_at=expiry, is_active=True)
            logger.info(
                "Link extended",
                extra={"link_id": link.id, "principal_id": owner_id},
            )
            return self._to_out(link)

    def regenerate(self, owner_id: int, link_id: int) -> LinkOut:
        """
        Give an owned link a fresh code; the old code stops resolving.

        :raises NotFoundError: If the link is missing or owned by someone else.
        :raises CodeExhaustedError: If no free code was found.
        """
        with self.rw_uow() as uow:
            link = self._owned_link(uow.links, owner_id, link_id)
            previous = link.short_code
            self._assign_unique_code(uow.links, link)
            logger.info(
                "Link code regenerated",
                extra={"link_id": link.id, "principal_id": owner_id, "short_code": link.short_code},
            )
            logger.debug("Code retired", extra={"short_code": previous})
            return self._to_out(link)

    def delete(self, owner_id: int, link_id: int) -> None:
        """
        Delete one owned link.

        :raises NotFoundError: If the link is missing or owned by someone else.
        """
        with self.rw_uow() as uow:
            link = self._owned_link(uow.links, owner_id, link_id)
            uow.links.delete(link)
            logger.info("Link deleted", extra={"link_id": link_id, "principal_id": owner_id})

    def delete_all(self, owner_id: int) -> int:
        """Delete every link owned by ``owner_id`` and return how many went."""
        with self.rw_uow() as uow:
            deleted = uow.links.delete_all_for_owner(owner_id)
            logger.info(
                "Owner links deleted",
                extra={"principal_id": owner_id, "deleted": deleted},
            )
            return deleted

    # ------------------------------------------------------------------ #
    # Dashboard
    # ------------------------------------------------------------------ #

    def list_for_owner(self, dto: LinkListIn) -> LinkListOut:
        """
        Page through the links of ``dto.owner_id``.

        ``total_clicks`` sums every owned link, independent of the filters.

        :raises InvalidInputError: On an unknown sort key or direction.
        """
        field = SORT_FIELDS.get(dto.sort_key)
        if field is None:
            raise InvalidInputError(f"Unknown sort key: {dto.sort_key}")
        if dto.sort_dir not in ("asc", "desc"):
            raise InvalidInputError(f"Unknown sort direction: {dto.sort_dir}")
        if dto.state not in ("all", "active", "expired"):
            raise InvalidInputError(f"Unknown state filter: {dto.state}")

        token = f"-{field}" if dto.sort_dir == "desc" else field
        pagination = self.ensure_pagination(page=dto.page, limit=dto.page_size, sort=[token])
        search = dto.search.strip() if dto.search else None

        with self.ro_uow() as uow:
            page = uow.links.list_for_owner(
                dto.owner_id,
                pagination,
                now=self.now(),
                state=dto.state,
                search=search or None,
            )
            total_clicks = uow.links.total_clicks_for_owner(dto.owner_id)
            return LinkListOut(
                items=[self._to_out(link) for link in page.items],
                total=page.total,
                page=page.page,
                page_size=page.limit,
                pages=page.pages,
                total_clicks=total_clicks,
            )

    # ------------------------------------------------------------------ #
    # Sweep
    # ------------------------------------------------------------------ #

    def sweep(self, now: datetime | None = None) -> SweepResult:
        """
        Expire stale links in one transaction.

        Anonymous links past expiry are deleted. Owned links past expiry are
        flagged inactive and keep their click history.
        """
        cutoff = now or self.now()
        with self.rw_uow() as uow:
            deleted = uow.links.delete_expired_anonymous(cutoff)
            deactivated = uow.links.deactivate_expired_owned(cutoff)

        logger.info(
            "Link sweep finished",
            extra={"deleted": deleted, "deactivated": deactivated},
        )
        return SweepResult(deleted=deleted, deactivated=deactivated)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _validate_url(self, raw: str | None) -> str:
        url = (raw or "").strip()
        if not url:
            raise InvalidUrlError("URL is required.")
        if len(url) > self.policy.max_url_length:
            raise InvalidUrlError(
                f"URL must be at most {self.policy.max_url_length} characters."
            )
        try:
            parts = urlsplit(url)
            host = parts.hostname
        except ValueError as exc:
            raise InvalidUrlError("URL is malformed.") from exc
        if parts.scheme.lower() not in ALLOWED_SCHEMES:
            raise InvalidUrlError("Only http and https URLs can be shortened.")
        if not host:
            raise InvalidUrlError("URL must include a host.")
        return url

    @staticmethod
    def _ensure_future(value: datetime, now: datetime) -> datetime:
        expiry = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        if expiry <= now:
            raise InvalidExpiryError("Expiry must be in the future.")
        return expiry.astimezone(UTC)

    @staticmethod
    def _owned_link(links: LinkStore, owner_id: int, link_id: int) -> Link:
        link = links.get_for_update(link_id)
        if link is None or not is_owner(actor_id=owner_id, ownership=link.ownership):
            raise NotFoundError("Link", link_id)
        return link

    def _candidates(self, seed: str):
        """Yield ``(attempt, code)`` pairs lazily, one per retry."""
        for attempt in range(self.policy.max_code_retries):
            yield attempt, self.generator.generate(seed, attempt)

    def _insert_with_unique_code(self, links: LinkStore, link: Link) -> None:
        for attempt, code in self._candidates(link.original_url):
            if links.exists_by_code(code):
                logger.debug("Short code taken", extra={"short_code": code, "attempt": attempt})
                continue
            link.short_code = code
            try:
                with links.session.begin_nested():
                    links.add(link)
            except IntegrityError as exc:
                if not violates(exc, "uq_links_short_code", "links.short_code"):
                    raise
                # The savepoint rollback expunged the pending link.
                logger.debug("Short code lost insert race", extra={"short_code": code, "attempt": attempt})
                continue
            return
        raise CodeExhaustedError(self.policy.max_code_retries)

    def _assign_unique_code(self, links: LinkStore, link: Link) -> None:
        for attempt, code in self._candidates(link.original_url):
            if links.exists_by_code(code):
                logger.debug("Short code taken", extra={"short_code": code, "attempt": attempt})
                continue
            try:
                with links.session.begin_nested():
                    links.update(link, short_code=code)
            except IntegrityError as exc:
                if not violates(exc, "uq_links_short_code", "links.short_code"):
                    raise
                logger.debug("Short code lost update race", extra={"short_code": code, "attempt": attempt})
                continue
            return
        raise CodeExhaustedError(self.policy.max_code_retries)

    def _to_out(self, link: Link) -> LinkOut:
        return LinkOut(
            id=link.id,
            original_url=link.original_url,
            short_code=link.short_code,
            short_url=self.policy.short_url(link.short_code),
            expires_at=link.expires_at,
            is_active=link.is_active,
            click_count=link.click_count,
            is_anonymous=link.owner_id is None,
            created_at=link.created_at,
        )
