"""Unit tests for the in-memory client token cache."""

from __future__ import annotations

from datetime import timedelta

import pytest
from freezegun import freeze_time

from compactify.client import ClientSessionCache
from compactify.client.session_cache import EXPIRY_SKEW_S, REFRESH_WINDOW_S


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock) -> ClientSessionCache:
    return ClientSessionCache(clock=clock)


def test_empty_cache(cache):
    assert cache.get_token() is None
    assert cache.principal is None
    assert cache.is_expired() is False
    assert cache.should_refresh() is False


def test_token_expires_early_by_skew(cache, clock):
    cache.set_token("tok", expires_in=3600, principal={"id": 1})

    clock.now += 3600 - EXPIRY_SKEW_S - 1
    assert cache.get_token() == "tok"

    clock.now += 1
    assert cache.is_expired() is True
    assert cache.get_token() is None
    # Reading an expired token clears everything.
    assert cache.principal is None


def test_should_refresh_window(cache, clock):
    cache.set_token("tok", expires_in=3600)
    stored_expiry = clock.now + 3600 - EXPIRY_SKEW_S

    clock.now = stored_expiry - REFRESH_WINDOW_S - 1
    assert cache.should_refresh() is False
    clock.now = stored_expiry - REFRESH_WINDOW_S
    assert cache.should_refresh() is True


def test_set_token_keeps_principal_when_omitted(cache):
    cache.set_token("a", principal={"id": 1})
    cache.set_token("b")
    assert cache.principal == {"id": 1}
    assert cache.get_token() == "b"


def test_clear(cache):
    cache.set_token("tok", principal={"id": 1})
    cache.clear()
    assert cache.get_token() is None
    assert cache.principal is None


def test_default_clock_follows_wall_time():
    with freeze_time("2026-01-01 00:00:00") as frozen:
        cache = ClientSessionCache()
        cache.set_token("tok", expires_in=120)
        assert cache.get_token() == "tok"
        frozen.tick(timedelta(seconds=60))
        assert cache.get_token() is None
