"""
GitHub Port - Abstract interface for the GitHub REST operations we consume.

The publish sequence only needs a narrow slice of the API: branch lookup,
ref updates, the git data API (blobs, trees, commits) and pull requests.
Repository and user lookups support binding and fork detection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


FILE_MODE = "100644"


@dataclass
class GitHubUserInfo:
    """The authenticated GitHub account."""

    id: int
    login: str
    name: str | None = None


@dataclass
class RepositoryInfo:
    """The subset of a repository payload we rely on."""

    full_name: str
    name: str
    owner: str
    fork: bool = False
    private: bool = False
    parent_full_name: str | None = None
    permissions: dict[str, bool] = field(default_factory=dict)
    html_url: str = ""

    @property
    def can_write(self) -> bool:
        return any(self.permissions.get(p) for p in ("push", "admin", "maintain"))

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RepositoryInfo:
        parent = data.get("parent") or {}
        owner = data.get("owner") or {}
        return cls(
            full_name=data.get("full_name", ""),
            name=data.get("name", ""),
            owner=owner.get("login", ""),
            fork=bool(data.get("fork")),
            private=bool(data.get("private")),
            parent_full_name=parent.get("full_name"),
            permissions=dict(data.get("permissions") or {}),
            html_url=data.get("html_url", ""),
        )


@dataclass
class BranchInfo:
    """A branch tip: the commit it points at and that commit's tree."""

    name: str
    commit_sha: str
    tree_sha: str


@dataclass
class TreeEntry:
    """One path in a tree to create. A None sha deletes the path."""

    path: str
    sha: str | None
    mode: str = FILE_MODE
    type: str = "blob"

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}


@dataclass
class PullRequestInfo:
    number: int
    html_url: str


class GitHubPort(ABC):
    """
    Abstract interface for GitHub operations.

    Implementations raise RemoteError subclasses on failure. No call is
    retried; a failure surfaces immediately.
    """

    # -------------------------------------------------------------------------
    # Users & Repositories
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_authenticated_user(self) -> GitHubUserInfo:
        """Get the account the token belongs to."""
        ...

    @abstractmethod
    def list_user_repositories(self) -> list[RepositoryInfo]:
        """List every repository visible to the token's user (all pages)."""
        ...

    @abstractmethod
    def get_repository(self, full_name: str) -> RepositoryInfo:
        """Get one repository, including its fork parent."""
        ...

    # -------------------------------------------------------------------------
    # Branches & Refs
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_branch(self, owner: str, repo: str, branch: str) -> BranchInfo:
        ...

    @abstractmethod
    def update_ref(self, owner: str, repo: str, ref: str, sha: str, force: bool = False) -> None:
        """
        Point an existing ref at ``sha``.

        Args:
            ref: Ref without the "refs/" prefix, e.g. "heads/master"
            force: Allow a non-fast-forward update
        """
        ...

    @abstractmethod
    def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        """
        Create a new ref.

        Args:
            ref: Fully qualified ref, e.g. "refs/heads/my-branch"
        """
        ...

    # -------------------------------------------------------------------------
    # Git Data
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_blob(self, owner: str, repo: str, content: str) -> str:
        """Upload file content; returns the blob sha."""
        ...

    @abstractmethod
    def create_tree(self, owner: str, repo: str, base_tree: str, entries: list[TreeEntry]) -> str:
        """Create a tree on top of ``base_tree``; returns the tree sha."""
        ...

    @abstractmethod
    def create_commit(self, owner: str, repo: str, message: str, tree: str, parents: list[str]) -> str:
        """Create a commit object; returns the commit sha."""
        ...

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_pull_request(
        self, owner: str, repo: str, title: str, body: str, head: str, base: str
    ) -> PullRequestInfo:
        ...
