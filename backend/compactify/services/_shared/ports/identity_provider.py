from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from compactify.models.principal import Provider

if TYPE_CHECKING:
    from compactify.services.sessions.dto import IdentityAssertion


class IdentityProvider(Protocol):
    """Port for an OAuth authorization-code identity provider."""

    name: Provider

    def authorization_url(self, *, state: str, redirect_uri: str) -> str:
        """Return the provider consent URL the popup is sent to."""
        ...

    def fetch_identity(self, *, code: str, redirect_uri: str) -> IdentityAssertion:
        """Exchange ``code`` and return the asserted identity.

        :raises IdentityProviderError: When the exchange fails or the provider
            withholds the id or the email.
        """
        ...
