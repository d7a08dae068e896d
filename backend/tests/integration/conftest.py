"""Fixtures for API-level tests: fake OAuth providers and signed-in clients."""

from __future__ import annotations

import pytest

from compactify.models.principal import Provider
from tests.helpers.oauth import FakeIdentityProvider, complete_login, popup_message


@pytest.fixture()
def providers(app, monkeypatch):
    """Install fake Google and GitHub adapters for the duration of a test."""
    registry = {
        Provider.GOOGLE: FakeIdentityProvider(Provider.GOOGLE),
        Provider.GITHUB: FakeIdentityProvider(Provider.GITHUB),
    }
    monkeypatch.setitem(app.extensions, "identity_providers", registry)
    return registry


@pytest.fixture()
def access_token(client, providers) -> str:
    """Sign in through the popup flow and return the bearer token."""
    resp = complete_login(client)
    assert resp.status_code == 200
    return popup_message(resp)["access_token"]


@pytest.fixture()
def auth_header(access_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
