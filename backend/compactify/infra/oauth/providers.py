"""
OAuth 2.0 authorization-code adapters for Google and GitHub.

Each adapter builds the consent URL, exchanges the callback ``code`` for a
provider access token and reads the account id and email. The provider
access token is used once and never stored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import requests

from compactify.models.principal import Provider
from compactify.services._shared.errors import IdentityProviderError, RateLimitError
from compactify.services._shared.ports.identity_provider import IdentityProvider
from compactify.services.sessions.dto import IdentityAssertion

logger = logging.getLogger(__name__)


class _OAuthClient:
    """Shared plumbing: credentials, HTTP session and error mapping."""

    name: Provider
    AUTHORIZE_URL: str
    TOKEN_URL: str
    SCOPES: tuple[str, ...]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        http: requests.Session | None = None,
        timeout: float = 10,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.http = http or requests.Session()
        self.timeout = timeout

    def _authorize_params(self, *, state: str, redirect_uri: str) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "state": state,
        }

    def authorization_url(self, *, state: str, redirect_uri: str) -> str:
        query = urlencode(self._authorize_params(state=state, redirect_uri=redirect_uri))
        return f"{self.AUTHORIZE_URL}?{query}"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning(
                "OAuth provider unreachable",
                extra={"provider": self.name.value},
            )
            raise IdentityProviderError(f"{self.name.value} is unreachable.") from exc

        if response.status_code == 429:
            logger.warning(
                "OAuth provider throttled request",
                extra={"provider": self.name.value, "endpoint": url},
            )
            raise RateLimitError(retry_after=_retry_after(response))
        if not response.ok:
            logger.warning(
                "OAuth provider rejected request",
                extra={"provider": self.name.value, "endpoint": url},
            )
            raise IdentityProviderError(f"{self.name.value} rejected the sign-in.")
        try:
            return response.json()
        except ValueError as exc:
            raise IdentityProviderError(f"{self.name.value} returned an invalid response.") from exc

    def _exchange_code(self, *, code: str, redirect_uri: str) -> str:
        payload = self._request(
            "POST",
            self.TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise IdentityProviderError(f"{self.name.value} did not return an access token.")
        return str(access_token)


class GoogleIdentityProvider(_OAuthClient):
    """Google OpenID Connect adapter."""

    name = Provider.GOOGLE
    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
    SCOPES = ("openid", "email", "profile")

    def _authorize_params(self, *, state: str, redirect_uri: str) -> dict[str, str]:
        params = super()._authorize_params(state=state, redirect_uri=redirect_uri)
        params["prompt"] = "select_account"
        return params

    def fetch_identity(self, *, code: str, redirect_uri: str) -> IdentityAssertion:
        token = self._exchange_code(code=code, redirect_uri=redirect_uri)
        info = self._request(
            "GET", self.USERINFO_URL, headers={"Authorization": f"Bearer {token}"}
        )

        external_id = info.get("sub")
        email = info.get("email")
        if not external_id or not email:
            raise IdentityProviderError("Missing required user data from GOOGLE.")

        return IdentityAssertion(
            email=email,
            provider=self.name,
            external_id=str(external_id),
            display_name=info.get("name"),
            email_verified=bool(info.get("email_verified")),
        )


class GitHubIdentityProvider(_OAuthClient):
    """GitHub OAuth app adapter; the email comes from ``/user/emails``."""

    name = Provider.GITHUB
    AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
    TOKEN_URL = "https://github.com/login/oauth/access_token"
    USER_URL = "https://api.github.com/user"
    EMAILS_URL = "https://api.github.com/user/emails"
    SCOPES = ("read:user", "user:email")

    def fetch_identity(self, *, code: str, redirect_uri: str) -> IdentityAssertion:
        token = self._exchange_code(code=code, redirect_uri=redirect_uri)
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }
        user = self._request("GET", self.USER_URL, headers=headers)
        emails = self._request("GET", self.EMAILS_URL, headers=headers)

        email, verified = _pick_github_email(emails, fallback=user.get("email"))
        external_id = user.get("id")
        if external_id is None or not email:
            raise IdentityProviderError("Missing required user data from GITHUB.")

        return IdentityAssertion(
            email=email,
            provider=self.name,
            external_id=str(external_id),
            display_name=user.get("name") or user.get("login"),
            email_verified=verified,
        )


def _retry_after(response: requests.Response) -> int | None:
    raw = response.headers.get("Retry-After", "")
    return int(raw) if raw.isdigit() else None


def _pick_github_email(entries: Any, *, fallback: str | None) -> tuple[str | None, bool]:
    """Prefer the verified primary address, then any verified one."""
    if isinstance(entries, list):
        verified = [e for e in entries if isinstance(e, dict) and e.get("verified") and e.get("email")]
        for entry in verified:
            if entry.get("primary"):
                return entry["email"], True
        if verified:
            return verified[0]["email"], True
    return fallback, False


def build_identity_providers(
    config: Mapping[str, Any], *, http: requests.Session | None = None
) -> dict[Provider, IdentityProvider]:
    """
    Instantiate every provider that has a client id configured.

    :param config: Flask config mapping.
    :param http: Optional shared ``requests`` session.
    :returns: Mapping of provider to adapter.
    """
    timeout = float(config.get("OAUTH_HTTP_TIMEOUT", 10))
    registry: dict[Provider, IdentityProvider] = {}
    if config.get("GOOGLE_CLIENT_ID"):
        registry[Provider.GOOGLE] = GoogleIdentityProvider(
            config["GOOGLE_CLIENT_ID"],
            config.get("GOOGLE_CLIENT_SECRET", ""),
            http=http,
            timeout=timeout,
        )
    if config.get("GITHUB_CLIENT_ID"):
        registry[Provider.GITHUB] = GitHubIdentityProvider(
            config["GITHUB_CLIENT_ID"],
            config.get("GITHUB_CLIENT_SECRET", ""),
            http=http,
            timeout=timeout,
        )
    return registry
