"""
Staging Store Port - persistence for users, installations, bindings and
staged changes.

Uniqueness (one staged change per user and record, one binding per user)
is the store's job, enforced through upserts and delete-then-create rather
than application-level locking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from byrpublish.core.domain.entities import (
    GitHubInstallation,
    RepositoryBinding,
    StagedChange,
    User,
)


class StagingStorePort(ABC):
    """Abstract interface for the relational store."""

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    def upsert_user(self, github_user_id: int, username: str, access_token: str) -> User:
        """Create the user or refresh its username and token."""
        ...

    @abstractmethod
    def get_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None:
        ...

    # -------------------------------------------------------------------------
    # Installations
    # -------------------------------------------------------------------------

    @abstractmethod
    def upsert_installation(self, installation: GitHubInstallation) -> GitHubInstallation:
        """Create or update an installation keyed by installation_id."""
        ...

    @abstractmethod
    def get_installation(self, installation_id: int) -> GitHubInstallation | None:
        ...

    @abstractmethod
    def update_installation(self, installation_id: int, **fields: object) -> GitHubInstallation:
        """
        Update fields of an existing installation.

        Raises:
            RecordNotFoundError: If no installation has that id.
        """
        ...

    @abstractmethod
    def delete_installation(self, installation_id: int) -> None:
        """
        Delete an installation.

        Raises:
            RecordNotFoundError: If no installation has that id.
        """
        ...

    @abstractmethod
    def find_installations_for_repositories(
        self, full_names: Iterable[str]
    ) -> list[GitHubInstallation]:
        """Active installations whose account/repository is in ``full_names``."""
        ...

    # -------------------------------------------------------------------------
    # Bindings
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_binding(self, user_id: int) -> RepositoryBinding | None:
        ...

    @abstractmethod
    def replace_binding(self, user_id: int, installation_id: int) -> RepositoryBinding:
        """
        Bind a user to an installation, dropping any previous binding.

        Raises:
            RecordNotFoundError: If the installation does not exist.
        """
        ...

    @abstractmethod
    def delete_bindings_for_installation(self, installation_id: int) -> int:
        """Delete every binding to an installation; returns how many."""
        ...

    # -------------------------------------------------------------------------
    # Staged changes
    # -------------------------------------------------------------------------

    @abstractmethod
    def list_changes(self, user_id: int) -> list[StagedChange]:
        """A user's staged changes, most recently updated first."""
        ...

    @abstractmethod
    def get_change(self, user_id: int, record_id: str) -> StagedChange | None:
        ...

    @abstractmethod
    def save_change(self, change: StagedChange) -> StagedChange:
        """Upsert a change keyed by (user_id, md5_hash)."""
        ...

    @abstractmethod
    def delete_change(self, user_id: int, record_id: str) -> bool:
        """Delete one change; returns whether a row existed."""
        ...

    @abstractmethod
    def delete_all_changes(self, user_id: int) -> int:
        """Delete all of a user's changes in one transaction."""
        ...
