"""Unit tests for the Flask-JWT-Extended token adapter."""

from __future__ import annotations

from datetime import timedelta

import pytest

from compactify.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from compactify.services._shared.errors import AuthenticationError


@pytest.fixture()
def provider() -> JWTTokenProvider:
    return JWTTokenProvider()


def test_access_token_claims(provider):
    token = provider.create_access_token(identity=7, expires_delta=timedelta(minutes=5))
    claims = provider.decode(token)
    assert claims["sub"] == "7"
    assert claims["type"] == "access"
    assert claims["jti"]


def test_refresh_token_claims(provider):
    token = provider.create_refresh_token(identity=7, expires_delta=timedelta(days=1))
    assert provider.decode(token)["type"] == "refresh"


def test_refresh_tokens_are_unique(provider):
    a = provider.create_refresh_token(identity=1, expires_delta=timedelta(days=1))
    b = provider.create_refresh_token(identity=1, expires_delta=timedelta(days=1))
    assert a != b


def test_expired_token_rejected(provider):
    token = provider.create_access_token(identity=1, expires_delta=timedelta(seconds=-10))
    with pytest.raises(AuthenticationError):
        provider.decode(token)


@pytest.mark.parametrize("token", ["", "abc", "a.b.c"])
def test_malformed_token_rejected(provider, token):
    with pytest.raises(AuthenticationError):
        provider.decode(token)


def test_tampered_token_rejected(provider):
    token = provider.create_access_token(identity=1, expires_delta=timedelta(minutes=5))
    head, body, sig = token.split(".")
    tampered = ".".join([head, body, sig[::-1]])
    with pytest.raises(AuthenticationError):
        provider.decode(tampered)
