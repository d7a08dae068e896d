"""Unit tests for PrincipalRepository."""

from __future__ import annotations

import pytest

from compactify.models.principal import Provider
from compactify.repositories import PrincipalRepository
from tests.factories.principal import PrincipalFactory


class TestPrincipalRepository:
    """Ensure ``PrincipalRepository`` identity lookups and hash writes behave."""

    @pytest.fixture()
    def repo(self):
        return PrincipalRepository()

    def test_get_by_email_is_case_insensitive(self, repo, session):
        p = PrincipalFactory(email="carol@example.com")
        session.commit()
        assert repo.get_by_email(" CAROL@example.com ").id == p.id
        assert repo.get_by_email("nobody@example.com") is None

    def test_get_by_external_id(self, repo, session):
        p = PrincipalFactory(provider=Provider.GITHUB, external_id="gh-1")
        session.commit()
        assert repo.get_by_external_id(Provider.GITHUB, "gh-1").id == p.id
        assert repo.get_by_external_id(Provider.GOOGLE, "gh-1") is None

    def test_set_and_clear_refresh_hash(self, repo, session):
        p = PrincipalFactory()
        session.commit()

        assert repo.set_refresh_hash(p.id, "h1") == 1
        session.commit()
        assert repo.get(p.id).refresh_token_hash == "h1"

        assert repo.clear_refresh_hash(p.id) == 1
        session.commit()
        assert repo.get(p.id).refresh_token_hash is None

    def test_swap_refresh_hash_is_compare_and_set(self, repo, session):
        p = PrincipalFactory(refresh_token_hash="old")
        session.commit()

        assert repo.swap_refresh_hash(p.id, "old", "new") == 1
        # A second swap presenting the stale hash loses.
        assert repo.swap_refresh_hash(p.id, "old", "newer") == 0
        session.commit()
        assert repo.get(p.id).refresh_token_hash == "new"

    def test_set_refresh_hash_for_missing_principal(self, repo):
        assert repo.set_refresh_hash(999_999, "h") == 0

    def test_update_whitelist(self, repo, session):
        p = PrincipalFactory()
        session.commit()
        repo.update(p, display_name="New Name")
        assert p.display_name == "New Name"
        with pytest.raises(ValueError):
            repo.update(p, refresh_token_hash="sneaky")
