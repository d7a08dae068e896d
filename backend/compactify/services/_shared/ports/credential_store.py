from __future__ import annotations

from typing import Protocol

from compactify.models.principal import Principal, Provider


class CredentialStore(Protocol):
    """Principal lookup plus the one hashed refresh secret each principal holds.

    The store only ever sees one-way hashes, never raw refresh tokens.
    """

    model: type[Principal]

    def add(self, instance: Principal) -> Principal: ...
    def get(self, entity_id: int) -> Principal | None: ...
    def get_for_update(self, entity_id: int) -> Principal | None: ...
    def get_by_email(self, email: str) -> Principal | None: ...
    def get_by_external_id(self, provider: Provider, external_id: str) -> Principal | None: ...
    def update(self, instance: Principal, **fields: object) -> Principal: ...

    def set_refresh_hash(self, principal_id: int, token_hash: str) -> int: ...

    def swap_refresh_hash(self, principal_id: int, expected_hash: str, new_hash: str) -> int:
        """Compare-and-set; returns ``0`` when another rotation won."""
        ...

    def clear_refresh_hash(self, principal_id: int) -> int: ...
