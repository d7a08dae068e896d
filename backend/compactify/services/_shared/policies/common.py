from __future__ import annotations

from compactify.models.link import OwnedBy, Ownership


def is_owner(*, actor_id: int | None, ownership: Ownership) -> bool:
    """Return True if ``actor_id`` owns a resource with ``ownership``.

    Anonymous resources have no owner, so nobody (not even an anonymous
    caller) passes this check.
    """
    if actor_id is None:
        return False
    return isinstance(ownership, OwnedBy) and ownership.principal_id == actor_id
