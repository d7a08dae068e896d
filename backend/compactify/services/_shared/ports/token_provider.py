from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol


class TokenProvider(Protocol):
    """Port for minting and verifying signed session tokens.

    Minted tokens carry ``sub`` (the principal id as a string), ``type``
    (``"access"`` or ``"refresh"``), ``exp`` and a random ``jti``.
    """

    def create_access_token(self, *, identity: int | str, expires_delta: timedelta) -> str: ...

    def create_refresh_token(self, *, identity: int | str, expires_delta: timedelta) -> str: ...

    def decode(self, token: str) -> dict[str, Any]:
        """Return verified claims.

        :raises AuthenticationError: On bad signature, expiry or malformed input.
        """
        ...
