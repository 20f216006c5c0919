"""
Sign-in with GitHub.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from byrpublish.adapters.github.client import GitHubOAuthClient
from byrpublish.core.domain.entities import User
from byrpublish.core.exceptions import AuthenticationError
from byrpublish.core.ports.github import GitHubPort
from byrpublish.core.ports.staging_store import StagingStorePort


class AuthService:
    """Turns OAuth codes or tokens into stored users."""

    def __init__(
        self,
        store: StagingStorePort,
        github_factory: Callable[[str], GitHubPort],
        oauth_client: GitHubOAuthClient | None = None,
        redirect_uri: str | None = None,
    ):
        self.store = store
        self.github_factory = github_factory
        self.oauth_client = oauth_client
        self.redirect_uri = redirect_uri
        self.logger = logging.getLogger("AuthService")

    def login_with_code(self, code: str) -> User:
        """
        Complete the OAuth flow for ``code`` and store the user.

        Raises:
            AuthenticationError: If OAuth is not configured or GitHub
                rejects the code.
        """
        if self.oauth_client is None:
            raise AuthenticationError("GitHub OAuth is not configured")
        token = self.oauth_client.exchange_code(code, self.redirect_uri)
        return self.login_with_token(token)

    def login_with_token(self, token: str) -> User:
        """Store the GitHub user that owns ``token``."""
        info = self.github_factory(token).get_authenticated_user()
        user = self.store.upsert_user(info.id, info.login, token)
        self.logger.info(f"Signed in {user.username} (GitHub id {info.id})")
        return user

    def resolve(self, username: str) -> User | None:
        return self.store.get_user_by_username(username)
