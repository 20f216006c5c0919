"""
Repository binding - choose which fork of the archive a user publishes from.

A fork is bindable when the user can write to it and the GitHub App is
installed on it, i.e. a known installation records that repository.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from byrpublish.core.domain.entities import RepositoryBinding, User
from byrpublish.core.exceptions import AuthenticationError, RecordNotFoundError
from byrpublish.core.ports.github import GitHubPort, RepositoryInfo
from byrpublish.core.ports.staging_store import StagingStorePort


@dataclass
class AvailableRepository:
    """A writable fork together with the installation that covers it."""

    repository: RepositoryInfo
    installation_id: int

    @property
    def full_name(self) -> str:
        return self.repository.full_name


@dataclass
class BindingPage:
    current: RepositoryBinding | None = None
    available: list[AvailableRepository] = field(default_factory=list)


class BindingService:
    """Lists bindable forks and records the user's choice."""

    def __init__(self, store: StagingStorePort, github_factory: Callable[[str], GitHubPort]):
        self.store = store
        self.github_factory = github_factory
        self.logger = logging.getLogger("BindingService")

    def current_binding(self, user: User) -> RepositoryBinding | None:
        if user.id is None:
            return None
        return self.store.get_binding(user.id)

    def available_repositories(self, user: User) -> list[AvailableRepository]:
        """
        Writable forks of the user that have the app installed.

        Raises:
            AuthenticationError: If the user has no GitHub token.
        """
        if not user.access_token:
            raise AuthenticationError(f"{user.username} has no GitHub access token")

        github = self.github_factory(user.access_token)
        writable = [r for r in github.list_user_repositories() if r.fork and r.can_write]
        installations = self.store.find_installations_for_repositories(r.full_name for r in writable)
        by_name = {
            inst.repository_full_name.lower(): inst
            for inst in installations
            if inst.repository_full_name
        }

        available = [
            AvailableRepository(repository=repo, installation_id=by_name[repo.full_name.lower()].installation_id)
            for repo in writable
            if repo.full_name.lower() in by_name
        ]
        self.logger.debug(
            f"{user.username}: {len(writable)} writable forks, {len(available)} bindable"
        )
        return available

    async def load_binding_page_async(self, user: User) -> BindingPage:
        current, available = await asyncio.gather(
            asyncio.to_thread(self.current_binding, user),
            asyncio.to_thread(self.available_repositories, user),
        )
        return BindingPage(current=current, available=available)

    def load_binding_page(self, user: User) -> BindingPage:
        """Fetch the current binding and the bindable forks concurrently."""
        return asyncio.run(self.load_binding_page_async(user))

    def bind_repository(self, user: User, installation_id: int) -> RepositoryBinding:
        """
        Bind ``user`` to the repository of ``installation_id``, replacing
        any earlier binding.

        Raises:
            RecordNotFoundError: If the user or the installation is unknown.
        """
        if user.id is None:
            raise RecordNotFoundError(f"User {user.username} not found", key=user.username)
        binding = self.store.replace_binding(user.id, installation_id)
        self.logger.info(
            f"Repository bound: {binding.installation.repository_full_name} for user {user.username}"
        )
        return binding
