"""Principal repository: identity lookups and refresh-hash storage."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select, update

from compactify.models.principal import Principal, Provider
from compactify.repositories.base import BaseRepository


class PrincipalRepository(BaseRepository[Principal]):
    """Persistence-only repository for :class:`Principal`.

    Implements the credential store: one hashed refresh secret per
    principal, replaced on rotation and cleared on logout. It never mints or
    verifies tokens.
    """

    model = Principal

    def _updatable_fields(self):
        return {"display_name", "provider", "external_id"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> Principal | None:
        """Fetch a principal by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: Principal or ``None`` when not found.
        """
        stmt = select(Principal).where(Principal.email == email.lower().strip())
        return cast(Principal | None, self.session.execute(stmt).scalars().first())

    def get_by_external_id(self, provider: Provider, external_id: str) -> Principal | None:
        """Fetch the principal linked to ``(provider, external_id)``."""
        stmt = select(Principal).where(
            Principal.provider == provider,
            Principal.external_id == external_id,
        )
        return cast(Principal | None, self.session.execute(stmt).scalars().first())

    # ---------------------------- Refresh hash ------------------------------

    def set_refresh_hash(self, principal_id: int, token_hash: str) -> int:
        """Overwrite the stored refresh hash unconditionally.

        :returns: Number of rows updated (``0`` if the principal is gone).
        """
        stmt = (
            update(Principal)
            .where(Principal.id == principal_id)
            .values(refresh_token_hash=token_hash)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def swap_refresh_hash(self, principal_id: int, expected_hash: str, new_hash: str) -> int:
        """Replace the refresh hash only if it still equals ``expected_hash``.

        A single conditional ``UPDATE``: of two concurrent rotations that
        read the same hash, only one matches.

        :returns: ``1`` when the swap happened, ``0`` otherwise.
        """
        stmt = (
            update(Principal)
            .where(
                Principal.id == principal_id,
                Principal.refresh_token_hash == expected_hash,
            )
            .values(refresh_token_hash=new_hash)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def clear_refresh_hash(self, principal_id: int) -> int:
        """Null the stored refresh hash.

        :returns: Number of rows updated.
        """
        stmt = (
            update(Principal)
            .where(Principal.id == principal_id)
            .values(refresh_token_hash=None)
            .execution_options(synchronize_session="fetch")
        )
        return int(self.session.execute(stmt).rowcount or 0)
