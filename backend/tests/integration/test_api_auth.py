"""Integration tests for the OAuth popup flow and session endpoints."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from compactify.models.principal import Provider
from compactify.services.sessions import IdentityAssertion
from tests.helpers.oauth import (
    AUTH,
    COOKIE_NAME,
    COOKIE_PATH,
    FakeIdentityProvider,
    complete_login,
    popup_message,
    refresh_cookie,
    start_login,
)


def test_start_redirects_to_provider_with_state(client, providers):
    resp = client.get(f"{AUTH}/google")

    assert resp.status_code == 302
    location = urlsplit(resp.headers["Location"])
    query = parse_qs(location.query)
    assert location.netloc == "idp.example"
    assert query["redirect_uri"][0].endswith("/api/v1/auth/google/callback")
    with client.session_transaction() as sess:
        assert sess["oauth_state"] == {"provider": "google", "state": query["state"][0]}


def test_unknown_provider_is_404(client, providers):
    assert client.get(f"{AUTH}/facebook").status_code == 404


def test_unconfigured_provider_is_404(client, app, monkeypatch):
    monkeypatch.setitem(app.extensions, "identity_providers", {})
    resp = client.get(f"{AUTH}/github")
    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"


def test_callback_success_posts_token_and_sets_cookie(client, providers, app):
    resp = complete_login(client)

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"
    message = popup_message(resp)
    assert message["type"] == "OAUTH_SUCCESS"
    assert message["access_token"]
    assert message["expires_in"] == int(app.config["ACCESS_TOKEN_TTL"].total_seconds())
    assert message["principal"]["email"] == "google@example.com"
    assert "refresh_token" not in message
    assert "http://localhost:5173" in resp.get_data(as_text=True)

    cookie = refresh_cookie(client)
    assert cookie is not None
    assert cookie.http_only is True


def test_callback_with_bad_state_fails(client, providers):
    start_login(client)
    resp = client.get(f"{AUTH}/google/callback", query_string={"code": "ok", "state": "forged"})

    message = popup_message(resp)
    assert message["type"] == "OAUTH_ERROR"
    assert refresh_cookie(client) is None


def test_callback_state_is_single_use(client, providers):
    state = start_login(client)
    first = client.get(f"{AUTH}/google/callback", query_string={"code": "ok", "state": state})
    second = client.get(f"{AUTH}/google/callback", query_string={"code": "ok", "state": state})
    assert popup_message(first)["type"] == "OAUTH_SUCCESS"
    assert popup_message(second)["type"] == "OAUTH_ERROR"


def test_callback_provider_error(client, providers):
    resp = complete_login(client, code="bad")
    message = popup_message(resp)
    assert message == {"type": "OAUTH_ERROR", "error": "GOOGLE rejected the sign-in."}


def test_callback_user_denied(client, providers):
    state = start_login(client, "github")
    resp = client.get(f"{AUTH}/github/callback", query_string={"error": "access_denied", "state": state})
    assert popup_message(resp)["type"] == "OAUTH_ERROR"


def test_unverified_email_merge_is_refused(client, providers):
    complete_login(client, "google")
    providers[Provider.GITHUB] = FakeIdentityProvider(
        Provider.GITHUB,
        IdentityAssertion(
            email="google@example.com",
            provider=Provider.GITHUB,
            external_id="gh-77",
            email_verified=False,
        ),
    )
    resp = complete_login(client, "github")
    assert popup_message(resp)["type"] == "OAUTH_ERROR"


def test_me_requires_bearer(client):
    resp = client.get(f"{AUTH}/me")
    assert resp.status_code == 401
    assert resp.get_json()["detail"] == "Authentication required"


def test_me_returns_principal(client, auth_header):
    resp = client.get(f"{AUTH}/me", headers=auth_header)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["email"] == "google@example.com"


def test_refresh_rotates_cookie(client, access_token):
    old = refresh_cookie(client).value

    resp = client.post(f"{AUTH}/refresh")

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert "refresh_token" not in data
    new = refresh_cookie(client).value
    assert new != old

    # Presenting the rotated-out token fails and clears the cookie.
    client.set_cookie(COOKIE_NAME, old, path=COOKIE_PATH)
    resp = client.post(f"{AUTH}/refresh")
    assert resp.status_code == 401
    assert refresh_cookie(client) is None


def test_refresh_without_cookie(client):
    assert client.post(f"{AUTH}/refresh").status_code == 401


def test_status_reports_session(client, access_token):
    resp = client.get(f"{AUTH}/status")
    body = resp.get_json()["data"]
    assert body["is_authenticated"] is True
    assert body["principal"]["email"] == "google@example.com"


def test_status_without_cookie(client):
    body = client.get(f"{AUTH}/status").get_json()["data"]
    assert body == {"is_authenticated": False, "principal": None}


def test_logout_revokes_refresh(client, access_token):
    token = refresh_cookie(client).value

    resp = client.post(f"{AUTH}/logout")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"logged_out": True}
    assert refresh_cookie(client) is None

    client.set_cookie(COOKIE_NAME, token, path=COOKIE_PATH)
    assert client.post(f"{AUTH}/refresh").status_code == 401


def test_logout_without_cookie_still_succeeds(client):
    assert client.post(f"{AUTH}/logout").status_code == 200
