"""Unit tests for the Google and GitHub OAuth adapters."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
import requests
import responses

from compactify.infra.oauth import (
    GitHubIdentityProvider,
    GoogleIdentityProvider,
    build_identity_providers,
)
from compactify.models.principal import Provider
from compactify.services._shared.errors import IdentityProviderError, RateLimitError

REDIRECT = "http://localhost:8000/api/v1/auth/google/callback"


@pytest.fixture()
def google() -> GoogleIdentityProvider:
    return GoogleIdentityProvider("gid", "gsecret")


@pytest.fixture()
def github() -> GitHubIdentityProvider:
    return GitHubIdentityProvider("hid", "hsecret")


def test_google_authorization_url(google):
    url = google.authorization_url(state="s1", redirect_uri=REDIRECT)
    parts = urlsplit(url)
    query = parse_qs(parts.query)

    assert url.startswith(GoogleIdentityProvider.AUTHORIZE_URL)
    assert query["client_id"] == ["gid"]
    assert query["state"] == ["s1"]
    assert query["redirect_uri"] == [REDIRECT]
    assert query["scope"] == ["openid email profile"]
    assert query["prompt"] == ["select_account"]


@responses.activate
def test_google_fetch_identity(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, json={"access_token": "ya29"})
    responses.get(
        GoogleIdentityProvider.USERINFO_URL,
        json={"sub": "1234", "email": "eve@example.com", "name": "Eve", "email_verified": True},
    )

    identity = google.fetch_identity(code="abc", redirect_uri=REDIRECT)

    assert identity.provider is Provider.GOOGLE
    assert identity.external_id == "1234"
    assert identity.email == "eve@example.com"
    assert identity.email_verified is True
    assert responses.calls[1].request.headers["Authorization"] == "Bearer ya29"


@responses.activate
def test_google_missing_email(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, json={"access_token": "ya29"})
    responses.get(GoogleIdentityProvider.USERINFO_URL, json={"sub": "1234"})

    with pytest.raises(IdentityProviderError, match="GOOGLE"):
        google.fetch_identity(code="abc", redirect_uri=REDIRECT)


@responses.activate
def test_token_exchange_rejected(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, json={"error": "invalid_grant"}, status=400)
    with pytest.raises(IdentityProviderError):
        google.fetch_identity(code="bad", redirect_uri=REDIRECT)


@responses.activate
def test_token_exchange_without_token(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, json={"error": "bad_verification_code"})
    with pytest.raises(IdentityProviderError):
        google.fetch_identity(code="bad", redirect_uri=REDIRECT)


@responses.activate
def test_provider_throttling_is_rate_limit(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, status=429, headers={"Retry-After": "30"})
    with pytest.raises(RateLimitError) as excinfo:
        google.fetch_identity(code="abc", redirect_uri=REDIRECT)
    assert excinfo.value.retry_after == 30


@responses.activate
def test_provider_unreachable(google):
    responses.post(GoogleIdentityProvider.TOKEN_URL, body=requests.ConnectionError("down"))
    with pytest.raises(IdentityProviderError, match="unreachable"):
        google.fetch_identity(code="abc", redirect_uri=REDIRECT)


@responses.activate
def test_github_prefers_verified_primary_email(github):
    responses.post(GitHubIdentityProvider.TOKEN_URL, json={"access_token": "gho"})
    responses.get(GitHubIdentityProvider.USER_URL, json={"id": 99, "login": "octo", "name": None})
    responses.get(
        GitHubIdentityProvider.EMAILS_URL,
        json=[
            {"email": "other@example.com", "verified": True, "primary": False},
            {"email": "main@example.com", "verified": True, "primary": True},
            {"email": "raw@example.com", "verified": False, "primary": False},
        ],
    )

    identity = github.fetch_identity(code="abc", redirect_uri=REDIRECT)

    assert identity.provider is Provider.GITHUB
    assert identity.external_id == "99"
    assert identity.email == "main@example.com"
    assert identity.email_verified is True
    assert identity.display_name == "octo"


@responses.activate
def test_github_falls_back_to_profile_email_unverified(github):
    responses.post(GitHubIdentityProvider.TOKEN_URL, json={"access_token": "gho"})
    responses.get(GitHubIdentityProvider.USER_URL, json={"id": 5, "email": "pub@example.com"})
    responses.get(GitHubIdentityProvider.EMAILS_URL, json=[])

    identity = github.fetch_identity(code="abc", redirect_uri=REDIRECT)
    assert identity.email == "pub@example.com"
    assert identity.email_verified is False


@responses.activate
def test_github_without_any_email(github):
    responses.post(GitHubIdentityProvider.TOKEN_URL, json={"access_token": "gho"})
    responses.get(GitHubIdentityProvider.USER_URL, json={"id": 5})
    responses.get(GitHubIdentityProvider.EMAILS_URL, json=[])

    with pytest.raises(IdentityProviderError, match="GITHUB"):
        github.fetch_identity(code="abc", redirect_uri=REDIRECT)


def test_build_identity_providers_skips_unconfigured():
    registry = build_identity_providers({"GITHUB_CLIENT_ID": "x", "GITHUB_CLIENT_SECRET": "y"})
    assert set(registry) == {Provider.GITHUB}
    assert build_identity_providers({}) == {}
