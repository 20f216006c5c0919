"""
GitHub Adapter - Implements GitHubPort on top of GitHubApiClient.

Translates raw API payloads into the port's small value types.
"""

from __future__ import annotations

import base64
import logging

from byrpublish.core.exceptions import RemoteError
from byrpublish.core.ports.github import (
    BranchInfo,
    GitHubPort,
    GitHubUserInfo,
    PullRequestInfo,
    RepositoryInfo,
    TreeEntry,
)

from .client import GitHubApiClient


class GitHubAdapter(GitHubPort):
    """GitHub implementation of GitHubPort."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = GitHubApiClient.DEFAULT_BASE_URL,
        timeout: float = GitHubApiClient.DEFAULT_TIMEOUT,
        client: GitHubApiClient | None = None,
    ):
        self._client = client or GitHubApiClient(token=token, base_url=base_url, timeout=timeout)
        self.logger = logging.getLogger("GitHubAdapter")

    @staticmethod
    def _require(value: object, what: str, resource: str) -> str:
        if not value:
            raise RemoteError(f"GitHub response is missing {what}", resource)
        return str(value)

    # -------------------------------------------------------------------------
    # Users & Repositories
    # -------------------------------------------------------------------------

    def get_authenticated_user(self) -> GitHubUserInfo:
        data = self._client.get_authenticated_user()
        return GitHubUserInfo(
            id=int(self._require(data.get("id"), "user id", "/user")),
            login=self._require(data.get("login"), "login", "/user"),
            name=data.get("name"),
        )

    def list_user_repositories(self) -> list[RepositoryInfo]:
        return [RepositoryInfo.from_api(r) for r in self._client.list_user_repositories()]

    def get_repository(self, full_name: str) -> RepositoryInfo:
        return RepositoryInfo.from_api(self._client.get_repository(full_name))

    # -------------------------------------------------------------------------
    # Branches & Refs
    # -------------------------------------------------------------------------

    def get_branch(self, owner: str, repo: str, branch: str) -> BranchInfo:
        resource = f"{owner}/{repo}@{branch}"
        data = self._client.get_branch(owner, repo, branch)
        commit = data.get("commit") or {}
        tree = (commit.get("commit") or {}).get("tree") or {}
        return BranchInfo(
            name=data.get("name", branch),
            commit_sha=self._require(commit.get("sha"), "commit sha", resource),
            tree_sha=self._require(tree.get("sha"), "tree sha", resource),
        )

    def update_ref(self, owner: str, repo: str, ref: str, sha: str, force: bool = False) -> None:
        self._client.update_ref(owner, repo, ref, sha, force=force)
        self.logger.info(f"Moved {owner}/{repo} {ref} to {sha[:7]}")

    def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        self._client.create_ref(owner, repo, ref, sha)
        self.logger.info(f"Created {owner}/{repo} {ref} at {sha[:7]}")

    # -------------------------------------------------------------------------
    # Git Data
    # -------------------------------------------------------------------------

    def create_blob(self, owner: str, repo: str, content: str) -> str:
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        data = self._client.create_blob(owner, repo, encoded, "base64")
        return self._require(data.get("sha"), "blob sha", f"{owner}/{repo}")

    def create_tree(self, owner: str, repo: str, base_tree: str, entries: list[TreeEntry]) -> str:
        data = self._client.create_tree(owner, repo, base_tree, [e.to_dict() for e in entries])
        return self._require(data.get("sha"), "tree sha", f"{owner}/{repo}")

    def create_commit(self, owner: str, repo: str, message: str, tree: str, parents: list[str]) -> str:
        data = self._client.create_commit(owner, repo, message, tree, parents)
        return self._require(data.get("sha"), "commit sha", f"{owner}/{repo}")

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------

    def create_pull_request(
        self, owner: str, repo: str, title: str, body: str, head: str, base: str
    ) -> PullRequestInfo:
        data = self._client.create_pull_request(owner, repo, title, body, head, base)
        return PullRequestInfo(
            number=int(data.get("number") or 0),
            html_url=self._require(data.get("html_url"), "pull request URL", f"{owner}/{repo}"),
        )

    def close(self) -> None:
        self._client.close()
