"""Unit tests for the Principal model."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from compactify.models.principal import Principal, Provider
from tests.factories.principal import PrincipalFactory


class TestPrincipalModel:
    def test_email_is_normalized(self, session):
        """Emails are stored trimmed and lowercase."""
        p = PrincipalFactory(email="  Alice@Example.COM ")
        session.commit()
        assert p.email == "alice@example.com"

    @pytest.mark.parametrize("raw", ["", "no-at-sign", "user@localhost"])
    def test_invalid_email_rejected(self, raw):
        with pytest.raises(ValueError):
            Principal(email=raw, provider=Provider.GOOGLE, external_id="x")

    def test_blank_display_name_becomes_none(self, session):
        p = PrincipalFactory(display_name="   ")
        session.commit()
        assert p.display_name is None

    def test_email_unique(self, session):
        PrincipalFactory(email="dup@example.com")
        session.commit()
        with pytest.raises(IntegrityError):
            PrincipalFactory(email="DUP@example.com")
        session.rollback()

    def test_provider_external_id_unique(self, session):
        PrincipalFactory(provider=Provider.GITHUB, external_id="42")
        session.commit()
        with pytest.raises(IntegrityError):
            PrincipalFactory(provider=Provider.GITHUB, external_id="42")
        session.rollback()

    def test_same_external_id_allowed_across_providers(self, session):
        PrincipalFactory(provider=Provider.GITHUB, external_id="7")
        PrincipalFactory(provider=Provider.GOOGLE, external_id="7")
        session.commit()

    @pytest.mark.parametrize("raw,expected", [("google", Provider.GOOGLE), (" GitHub ", Provider.GITHUB)])
    def test_provider_parse(self, raw, expected):
        assert Provider.parse(raw) is expected

    def test_provider_parse_unknown(self):
        with pytest.raises(ValueError):
            Provider.parse("facebook")
