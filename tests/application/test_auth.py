"""
Tests for signing in with GitHub.
"""

from unittest.mock import MagicMock

import pytest

from byrpublish.application.auth import AuthService
from byrpublish.core.exceptions import AuthenticationError
from byrpublish.core.ports.github import GitHubUserInfo


class TestAuthService:
    """Tests for AuthService."""

    def test_login_with_token(self, store, github_factory):
        """The token's owner is stored with the token."""
        user = AuthService(store, github_factory).login_with_token("gho_abc")

        github_factory.assert_called_once_with("gho_abc")
        assert user.username == "octocat"
        assert user.github_user_id == 42
        assert store.get_user_by_username("octocat").access_token == "gho_abc"

    def test_login_again_updates(self, store, github_factory, mock_github):
        """A renamed account keeps its local id."""
        service = AuthService(store, github_factory)
        first = service.login_with_token("t1")
        mock_github.get_authenticated_user.return_value = GitHubUserInfo(id=42, login="octo2")
        second = service.login_with_token("t2")

        assert second.id == first.id
        assert service.resolve("octo2").access_token == "t2"
        assert service.resolve("octocat") is None

    def test_login_with_code(self, store, github_factory):
        """Codes are exchanged with the configured redirect URI."""
        oauth = MagicMock()
        oauth.exchange_code.return_value = "gho_from_code"
        service = AuthService(store, github_factory, oauth, redirect_uri="https://app/cb")

        user = service.login_with_code("abc")

        oauth.exchange_code.assert_called_once_with("abc", "https://app/cb")
        assert user.access_token == "gho_from_code"

    def test_login_with_code_without_oauth(self, store, github_factory):
        with pytest.raises(AuthenticationError, match="not configured"):
            AuthService(store, github_factory).login_with_code("abc")

    def test_rejected_token(self, store, github_factory, mock_github):
        """GitHub's rejection propagates and nothing is stored."""
        mock_github.get_authenticated_user.side_effect = AuthenticationError("Bad credentials")
        with pytest.raises(AuthenticationError):
            AuthService(store, github_factory).login_with_token("bad")
        assert store.get_user_by_username("octocat") is None
