"""Unit tests for the HTTP API client."""

from __future__ import annotations

from concurrent.futures import Future

import pytest
import requests
import responses

from compactify.client import (
    ApiClient,
    ApiError,
    AuthenticationRequiredError,
    AuthResult,
    ClientSessionCache,
    ProviderAuthError,
    RequestTimeoutError,
    TooManyRequestsError,
)

BASE = "http://sho.rt"
API = f"{BASE}/api/v1"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def api(clock) -> ApiClient:
    return ApiClient(BASE, cache=ClientSessionCache(clock=clock))


def _refresh_ok(token: str = "fresh") -> None:
    responses.post(
        f"{API}/auth/refresh",
        json={"data": {"access_token": token, "expires_in": 3600, "principal": {"id": 1}}},
    )


@responses.activate
def test_request_sends_bearer_token(api):
    api.cache.set_token("tok")
    responses.get(f"{API}/auth/me", json={"data": {"id": 1}})

    assert api.me() == {"id": 1}
    assert responses.calls[0].request.headers["Authorization"] == "Bearer tok"


@responses.activate
def test_anonymous_calls_send_no_token(api):
    api.cache.set_token("tok")
    responses.post(f"{API}/links/anonymous", json={"data": {"short_code": "abc"}}, status=201)

    assert api.shorten_anonymous("https://example.com")["short_code"] == "abc"
    assert "Authorization" not in responses.calls[0].request.headers


@responses.activate
def test_401_refreshes_once_and_retries(api):
    api.cache.set_token("stale")
    responses.get(f"{API}/auth/me", status=401, json={"detail": "Authentication required"})
    _refresh_ok()
    responses.get(f"{API}/auth/me", json={"data": {"id": 1}})

    assert api.me() == {"id": 1}
    assert [c.request.url for c in responses.calls] == [
        f"{API}/auth/me",
        f"{API}/auth/refresh",
        f"{API}/auth/me",
    ]
    assert responses.calls[2].request.headers["Authorization"] == "Bearer fresh"


@responses.activate
def test_401_after_failed_refresh_requires_login(api):
    api.cache.set_token("stale")
    responses.get(f"{API}/auth/me", status=401)
    responses.post(f"{API}/auth/refresh", status=401)

    with pytest.raises(AuthenticationRequiredError):
        api.me()
    assert api.cache.get_token() is None


@responses.activate
def test_second_401_is_not_retried_again(api):
    api.cache.set_token("stale")
    responses.get(f"{API}/auth/me", status=401)
    _refresh_ok()

    with pytest.raises(AuthenticationRequiredError):
        api.me()
    assert len(responses.calls) == 3
    assert api.is_authenticated is False


@responses.activate
def test_proactive_refresh_near_expiry(api, clock):
    api.cache.set_token("old", expires_in=600)
    clock.now = 600 - 60 - 120  # inside the refresh window
    _refresh_ok("new")
    responses.get(f"{API}/auth/me", json={"data": {"id": 1}})

    api.me()
    assert responses.calls[0].request.url == f"{API}/auth/refresh"
    assert responses.calls[1].request.headers["Authorization"] == "Bearer new"


@responses.activate
def test_429_maps_to_too_many_requests(api):
    responses.post(f"{API}/links/anonymous", status=429, json={"detail": "slow down"})
    with pytest.raises(TooManyRequestsError):
        api.shorten_anonymous("https://example.com")


@responses.activate
def test_problem_detail_becomes_message(api):
    api.cache.set_token("tok")
    responses.post(
        f"{API}/links",
        status=403,
        json={"status": 403, "detail": "Link limit reached (50).", "code": "quota_exceeded"},
    )
    with pytest.raises(ApiError) as excinfo:
        api.shorten("https://example.com")
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Link limit reached (50)."
    assert excinfo.value.payload["code"] == "quota_exceeded"


@responses.activate
def test_non_json_error(api):
    responses.get(f"{API}/auth/status", status=502, body="bad gateway")
    with pytest.raises(ApiError, match="502"):
        api.status()


@responses.activate
def test_timeout(api):
    responses.get(f"{API}/auth/status", body=requests.Timeout())
    with pytest.raises(RequestTimeoutError):
        api.status()


@responses.activate
def test_refresh_failure_never_raises(api):
    api.cache.set_token("tok")
    responses.post(f"{API}/auth/refresh", body=requests.ConnectionError())
    assert api.refresh() is None
    assert api.cache.get_token() is None


@responses.activate
def test_logout_always_clears(api):
    api.cache.set_token("tok")
    responses.post(f"{API}/auth/logout", body=requests.ConnectionError())
    api.logout()
    assert api.cache.get_token() is None


@responses.activate
def test_list_links_passes_query(api):
    api.cache.set_token("tok")
    responses.get(f"{API}/links", json={"data": [], "meta": {"total": 0}, "stats": {"total_clicks": 0}})

    body = api.list_links(page=2, limit=5, sort_by="clickCount", sort_order="asc", state="active")

    assert body["stats"]["total_clicks"] == 0
    sent = responses.calls[0].request.url
    for part in ("page=2", "limit=5", "sort_by=clickCount", "sort_order=asc", "filter=active"):
        assert part in sent


class StubHandshake:
    def __init__(self, *, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.urls: list[str] = []

    def authenticate(self, url: str, provider: str = "oauth") -> Future:
        self.urls.append(url)
        future: Future = Future()
        if self.error is not None:
            future.set_exception(self.error)
        else:
            future.set_result(self.result)
        return future


def test_login_stores_token(api):
    handshake = StubHandshake(result=AuthResult("tok", {"id": 4}, 900))
    api.login("google", handshake).result()

    assert handshake.urls == [f"{API}/auth/google"]
    assert api.cache.get_token() == "tok"
    assert api.cache.principal == {"id": 4}


def test_login_failure_leaves_cache_empty(api):
    handshake = StubHandshake(error=ProviderAuthError("nope"))
    with pytest.raises(ProviderAuthError):
        api.login("github", handshake).result()
    assert api.cache.get_token() is None
