"""
compactify.services._shared.ports
=================================

Hexagonal interfaces the services depend on.

Modules
-------
- :mod:`token_provider`: :class:`~.TokenProvider`, signing and verification
  of session tokens.
- :mod:`credential_store`: :class:`~.CredentialStore`, principals and their
  hashed refresh secret.
- :mod:`link_store`: :class:`~.LinkStore`, link persistence.
- :mod:`identity_provider`: :class:`~.IdentityProvider`, OAuth providers.

Concrete adapters live in :mod:`compactify.repositories` and
:mod:`compactify.infra`.
"""

from __future__ import annotations

from .credential_store import CredentialStore
from .identity_provider import IdentityProvider
from .link_store import LinkStore
from .token_provider import TokenProvider

__all__ = [
    "CredentialStore",
    "IdentityProvider",
    "LinkStore",
    "TokenProvider",
]
