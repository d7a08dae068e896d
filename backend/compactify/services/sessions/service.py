from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from compactify.models.principal import Principal
from compactify.services._shared.base import BaseService, Clock, ServiceContext
from compactify.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    IdentityProviderError,
    NotFoundError,
)
from compactify.services._shared.ports.credential_store import CredentialStore
from compactify.services._shared.ports.token_provider import TokenProvider

from .dto import IdentityAssertion, PrincipalOut, SessionPairOut, SessionTokenConfig

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _seconds(delta: timedelta) -> int:
    return int(delta.total_seconds())


class SessionService(BaseService):
    """
    Session and identity lifecycle (resolve / issue / validate / refresh / revoke).

    Security
    --------
    - Only a one-way hash of the live refresh token is stored, one per
      principal; issuing a pair overwrites it and logout clears it.
    - Refresh rotation swaps the hash with a compare-and-set write, so of two
      concurrent refreshes presenting the same token exactly one succeeds.
    - Every token failure surfaces as the same :class:`AuthenticationError`
      (or ``None`` from :meth:`validate_access`); callers cannot tell a bad
      signature from an expired or wrong-type token.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        token_cfg: SessionTokenConfig | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter minting and decoding JWTs.
        :param token_cfg: Token lifetimes and refresh-hash settings.
        """
        super().__init__(ctx=ctx, clock=clock)
        self.tokens = token_provider
        self.cfg = token_cfg or SessionTokenConfig()

    # ------------------------------------------------------------------ #
    # Identity resolution
    # ------------------------------------------------------------------ #

    def resolve_principal(self, assertion: IdentityAssertion) -> PrincipalOut:
        """
        Map an OAuth assertion onto a principal, creating or linking as needed.

        Branches
        --------
        1. ``(provider, external_id)`` known: reuse it, refreshing the
           display name when a different one is supplied.
        2. Unknown id but known email: link this provider onto the existing
           principal. Requires a verified email unless
           :attr:`SessionTokenConfig.link_requires_verified_email` is off.
        3. Neither known: create a principal.

        :raises IdentityProviderError: If the assertion lacks email or id.
        :raises ConflictError: If linking is refused or a concurrent login
            created the same account.
        """
        email = (assertion.email or "").strip().lower()
        external_id = (assertion.external_id or "").strip()
        if not email or not external_id:
            raise IdentityProviderError("Identity provider did not return an email and account id.")

        try:
            with self.rw_uow() as uow:
                principals: CredentialStore = uow.principals

                principal = principals.get_by_external_id(assertion.provider, external_id)
                if principal is not None:
                    if assertion.display_name and assertion.display_name != principal.display_name:
                        principals.update(principal, display_name=assertion.display_name)
                    logger.info(
                        "Principal resolved",
                        extra={"principal_id": principal.id, "provider": assertion.provider.value},
                    )
                    return self._principal_out(principal)

                principal = principals.get_by_email(email)
                if principal is not None:
                    if self.cfg.link_requires_verified_email and not assertion.email_verified:
                        raise ConflictError(
                            "Principal",
                            "email belongs to an existing account; "
                            "sign in with the provider you used before",
                        )
                    fields: dict[str, Any] = {
                        "provider": assertion.provider,
                        "external_id": external_id,
                    }
                    if assertion.display_name:
                        fields["display_name"] = assertion.display_name
                    principals.update(principal, **fields)
                    logger.info(
                        "Provider linked to principal",
                        extra={"principal_id": principal.id, "provider": assertion.provider.value},
                    )
                    return self._principal_out(principal)

                try:
                    principal = Principal(
                        email=email,
                        provider=assertion.provider,
                        external_id=external_id,
                        display_name=assertion.display_name,
                    )
                except ValueError as exc:
                    raise IdentityProviderError(str(exc)) from exc
                principals.add(principal)
                logger.info(
                    "Principal created",
                    extra={"principal_id": principal.id, "provider": assertion.provider.value},
                )
                return self._principal_out(principal)
        except IntegrityError as ie:
            raise ConflictError("Principal", "account was created concurrently, retry") from ie

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def issue_for_principal(self, principal_id: int) -> SessionPairOut:
        """
        Mint an access/refresh pair and store the refresh hash.

        Overwrites any previous hash, so earlier refresh tokens stop working.

        :raises NotFoundError: If the principal does not exist.
        """
        with self.rw_uow() as uow:
            principal = uow.principals.get(principal_id)
            if principal is None:
                raise NotFoundError("Principal", principal_id)

            access, refresh = self._mint_pair(principal.id)
            uow.principals.set_refresh_hash(principal.id, self._hash(refresh))
            logger.info("Session issued", extra={"principal_id": principal.id})
            return self._pair_out(access, refresh, principal)

    # ------------------------------------------------------------------ #
    # Validate
    # ------------------------------------------------------------------ #

    def validate_access(self, token: str | None) -> PrincipalOut | None:
        """
        Return the principal behind an access token, or ``None``.

        Any failure (signature, expiry, wrong type, unknown principal) gives
        the same ``None``.
        """
        principal_id = self._subject(token, ACCESS_TOKEN_TYPE, swallow=True)
        if principal_id is None:
            return None
        with self.ro_uow() as uow:
            principal = uow.principals.get(principal_id)
            return self._principal_out(principal) if principal is not None else None

    def status(self, refresh_token: str | None) -> PrincipalOut | None:
        """
        Report who a refresh token belongs to, without rotating it.

        :returns: The principal when the token is valid and still the live
            one, else ``None``.
        """
        principal_id = self._subject(refresh_token, REFRESH_TOKEN_TYPE, swallow=True)
        if principal_id is None or refresh_token is None:
            return None
        with self.ro_uow() as uow:
            principal = uow.principals.get(principal_id)
            if principal is None or not self._matches(principal.refresh_token_hash, refresh_token):
                return None
            return self._principal_out(principal)

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh(self, token: str | None) -> SessionPairOut:
        """
        Rotate a refresh token into a brand-new pair.

        :raises AuthenticationError: If the token is invalid, not a refresh
            token, no longer the stored one, or lost a concurrent rotation.
        """
        principal_id = self._subject(token, REFRESH_TOKEN_TYPE)

        with self.rw_uow() as uow:
            principal = uow.principals.get(principal_id)
            if principal is None:
                raise AuthenticationError()
            stored = principal.refresh_token_hash
            if stored is None or not self._matches(stored, token):
                logger.info("Refresh token rejected", extra={"principal_id": principal_id})
                raise AuthenticationError()

            access, refresh = self._mint_pair(principal.id)
            if uow.principals.swap_refresh_hash(principal.id, stored, self._hash(refresh)) == 0:
                logger.info("Refresh rotation lost race", extra={"principal_id": principal_id})
                raise AuthenticationError()

            logger.info("Session refreshed", extra={"principal_id": principal.id})
            return self._pair_out(access, refresh, principal)

    # ------------------------------------------------------------------ #
    # Revoke
    # ------------------------------------------------------------------ #

    def revoke(self, token: str | None) -> None:
        """
        Best-effort logout: clear the refresh hash named by a refresh token.

        Access tokens are ignored.

        Never raises; failures are logged at debug level and dropped.
        """
        try:
            principal_id = self._subject(token, REFRESH_TOKEN_TYPE)
            with self.rw_uow() as uow:
                uow.principals.clear_refresh_hash(principal_id)
            logger.info("Session revoked", extra={"principal_id": principal_id})
        except Exception:
            logger.debug("Revoke ignored", exc_info=True)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _subject(
        self, token: str | None, expected_type: str | None, *, swallow: bool = False
    ) -> int | None:
        """
        Decode ``token`` and return its subject as an int.

        :param expected_type: Required ``type`` claim, ``None`` to accept any.
        :param swallow: Return ``None`` instead of raising.
        :raises AuthenticationError: On any failure when ``swallow`` is false.
        """
        try:
            if not token:
                raise AuthenticationError()
            claims = self.tokens.decode(token)
            if expected_type is not None and claims.get("type") != expected_type:
                raise AuthenticationError()
            try:
                return int(claims["sub"])
            except (KeyError, TypeError, ValueError) as exc:
                raise AuthenticationError() from exc
        except AuthenticationError:
            if swallow:
                return None
            raise

    def _mint_pair(self, principal_id: int) -> tuple[str, str]:
        access = self.tokens.create_access_token(
            identity=principal_id, expires_delta=self.cfg.access_ttl
        )
        refresh = self.tokens.create_refresh_token(
            identity=principal_id, expires_delta=self.cfg.refresh_ttl
        )
        return access, refresh

    def _hash(self, token: str) -> str:
        return generate_password_hash(token, method=self.cfg.hash_method)

    @staticmethod
    def _matches(stored: str | None, token: str) -> bool:
        return bool(stored) and check_password_hash(stored, token)

    def _pair_out(self, access: str, refresh: str, principal: Principal) -> SessionPairOut:
        return SessionPairOut(
            access_token=access,
            refresh_token=refresh,
            access_expires_in=_seconds(self.cfg.access_ttl),
            refresh_expires_in=_seconds(self.cfg.refresh_ttl),
            principal=self._principal_out(principal),
        )

    @staticmethod
    def _principal_out(principal: Principal) -> PrincipalOut:
        return PrincipalOut(
            id=principal.id,
            email=principal.email,
            display_name=principal.display_name,
            provider=principal.provider.value,
            created_at=principal.created_at,
        )
