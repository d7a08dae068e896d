"""OAuth identity provider adapters."""

from __future__ import annotations

from .providers import GitHubIdentityProvider, GoogleIdentityProvider, build_identity_providers

__all__ = ["GitHubIdentityProvider", "GoogleIdentityProvider", "build_identity_providers"]
