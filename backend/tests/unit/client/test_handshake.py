"""Unit tests for the popup OAuth handshake."""

from __future__ import annotations

import pytest

from compactify.client import (
    AuthenticationCancelledError,
    AuthenticationTimeoutError,
    MessageChannel,
    PopupBlockedError,
    PopupHandshake,
    ProviderAuthError,
)

APP_ORIGIN = "http://localhost:5173"
API_ORIGIN = "http://localhost:8000"
WAIT = 2.0


class FakePopup:
    def __init__(self) -> None:
        self.closed = False
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class FakeOpener:
    def __init__(self, popup: FakePopup | None) -> None:
        self.popup = popup
        self.opened: list[tuple[str, str]] = []

    def __call__(self, url: str, name: str):
        self.opened.append((url, name))
        return self.popup


@pytest.fixture()
def channel() -> MessageChannel:
    return MessageChannel()


@pytest.fixture()
def popup() -> FakePopup:
    return FakePopup()


def _handshake(channel, popup, **kwargs) -> PopupHandshake:
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("timeout", 5.0)
    return PopupHandshake(
        FakeOpener(popup), channel, allowed_origins=[APP_ORIGIN, API_ORIGIN + "/", None], **kwargs
    )


def test_success_message_resolves_and_tears_down(channel, popup):
    future = _handshake(channel, popup).authenticate(f"{API_ORIGIN}/api/v1/auth/google", "google")

    channel.post(
        {"type": "OAUTH_SUCCESS", "access_token": "tok", "expires_in": 900, "principal": {"id": 3}},
        origin=API_ORIGIN,
    )

    result = future.result(timeout=WAIT)
    assert result.access_token == "tok"
    assert result.expires_in == 900
    assert result.principal == {"id": 3}
    assert popup.closed is True
    assert channel.listener_count == 0


def test_opener_receives_provider_window_name(channel, popup):
    opener = FakeOpener(popup)
    handshake = PopupHandshake(opener, channel, allowed_origins=[APP_ORIGIN], poll_interval=0.01)
    handshake.authenticate("http://x/auth/github", "github")
    assert opener.opened == [("http://x/auth/github", "github_auth")]
    channel.post({"type": "OAUTH_ERROR", "error": "stop"}, origin=APP_ORIGIN)


def test_untrusted_origin_is_ignored(channel, popup):
    future = _handshake(channel, popup).authenticate("http://x/auth/google")

    channel.post({"type": "OAUTH_SUCCESS", "access_token": "evil"}, origin="http://evil.example")
    assert not future.done()

    channel.post({"type": "OAUTH_ERROR", "error": "Access denied"}, origin=APP_ORIGIN)
    with pytest.raises(ProviderAuthError, match="Access denied"):
        future.result(timeout=WAIT)


def test_unrelated_messages_are_ignored(channel, popup):
    future = _handshake(channel, popup).authenticate("http://x/auth/google")
    channel.post("hello", origin=APP_ORIGIN)
    channel.post({"type": "SOMETHING_ELSE"}, origin=APP_ORIGIN)
    assert not future.done()
    popup.closed = True
    with pytest.raises(AuthenticationCancelledError):
        future.result(timeout=WAIT)


def test_settles_exactly_once(channel, popup):
    future = _handshake(channel, popup).authenticate("http://x/auth/google")

    channel.post({"type": "OAUTH_SUCCESS", "access_token": "first"}, origin=APP_ORIGIN)
    channel.post({"type": "OAUTH_ERROR", "error": "late"}, origin=APP_ORIGIN)
    channel.post({"type": "OAUTH_SUCCESS", "access_token": "second"}, origin=APP_ORIGIN)

    assert future.result(timeout=WAIT).access_token == "first"
    assert popup.close_calls == 1


def test_malformed_success_fields_still_settle(channel, popup):
    future = _handshake(channel, popup, timeout=30.0).authenticate("http://x/auth/google")

    channel.post(
        {"type": "OAUTH_SUCCESS", "access_token": "tok", "expires_in": "soon", "principal": "me"},
        origin=APP_ORIGIN,
    )

    assert future.done()
    result = future.result()
    assert result.access_token == "tok"
    assert result.expires_in == 3600
    assert result.principal == {}
    assert channel.listener_count == 0


def test_failing_listener_does_not_starve_the_rest(channel, caplog):
    seen: list[tuple[str, object]] = []

    def broken(origin, data):
        raise ValueError("bad listener")

    channel.add_listener(broken)
    channel.add_listener(lambda origin, data: seen.append((origin, data)))

    with caplog.at_level("ERROR", logger="compactify.client.handshake"):
        channel.post({"type": "PING"}, origin=APP_ORIGIN)

    assert seen == [(APP_ORIGIN, {"type": "PING"})]
    assert "Message listener failed" in caplog.text


def test_success_without_token_fails(channel, popup):
    future = _handshake(channel, popup).authenticate("http://x/auth/google")
    channel.post({"type": "OAUTH_SUCCESS"}, origin=APP_ORIGIN)
    with pytest.raises(ProviderAuthError):
        future.result(timeout=WAIT)


def test_user_closing_popup_cancels(channel, popup):
    future = _handshake(channel, popup).authenticate("http://x/auth/google")
    popup.closed = True

    with pytest.raises(AuthenticationCancelledError):
        future.result(timeout=WAIT)
    assert channel.listener_count == 0


def test_timeout(channel, popup):
    future = _handshake(channel, popup, poll_interval=10.0, timeout=0.05).authenticate(
        "http://x/auth/google"
    )

    with pytest.raises(AuthenticationTimeoutError):
        future.result(timeout=WAIT)
    assert popup.closed is True
    assert channel.listener_count == 0


def test_blocked_popup_fails_immediately(channel):
    future = _handshake(channel, None).authenticate("http://x/auth/google")
    assert future.done()
    with pytest.raises(PopupBlockedError):
        future.result()
    assert channel.listener_count == 0
