"""
Publish Orchestrator - turns a user's staged changes into a pull request.

Publishing runs five steps against GitHub, in order:

1. check_binding       - resolve the fork the user publishes from
2. sync_upstream       - force the fork's default branch to upstream's tip
3. create_branch       - branch off the synced default branch
4. commit_files        - one commit with every staged change
5. create_pull_request - open the PR upstream and clear the staged changes

Every step can be called on its own. A failing step raises
PublishStepError; publish() stops at the first failure and reports what
had completed. Nothing is rolled back: a branch created before a failed
commit stays on the fork.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from byrpublish.core.domain.entities import StagedChange, User
from byrpublish.core.domain.enums import ChangeStatus
from byrpublish.core.exceptions import (
    AuthenticationError,
    BindingRequiredError,
    PublishError,
    PublishStepError,
)
from byrpublish.core.ports.config_provider import ArchiveConfig
from byrpublish.core.ports.github import GitHubPort, TreeEntry
from byrpublish.core.ports.staging_store import StagingStorePort

from .commit_message import generate_commit_message


NO_CHANGES_MESSAGE = "没有文件变更需要提交"

GitHubFactory = Callable[[str], GitHubPort]
ProgressCallback = Callable[[str, int, int], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PublishStep(Enum):
    CHECK_BINDING = "check_binding"
    SYNC_UPSTREAM = "sync_upstream"
    CREATE_BRANCH = "create_branch"
    COMMIT_FILES = "commit_files"
    CREATE_PULL_REQUEST = "create_pull_request"

    @property
    def default_message(self) -> str:
        return {
            PublishStep.CHECK_BINDING: "检查仓库绑定失败",
            PublishStep.SYNC_UPSTREAM: "同步上游仓库失败",
            PublishStep.CREATE_BRANCH: "创建分支失败",
            PublishStep.COMMIT_FILES: "提交文件失败",
            PublishStep.CREATE_PULL_REQUEST: "创建 Pull Request 失败",
        }[self]

    @property
    def description(self) -> str:
        return {
            PublishStep.CHECK_BINDING: "检查仓库绑定",
            PublishStep.SYNC_UPSTREAM: "同步上游仓库",
            PublishStep.CREATE_BRANCH: "创建分支",
            PublishStep.COMMIT_FILES: "提交文件",
            PublishStep.CREATE_PULL_REQUEST: "创建 Pull Request",
        }[self]


STEPS = tuple(PublishStep)


@dataclass
class PublishTarget:
    """The fork a user publishes from and the credentials to reach it."""

    owner: str
    repo: str
    token: str
    username: str
    user_id: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class PublishResult:
    """
    Outcome of a publish run.

    Attributes:
        completed_steps: Steps that finished, in order.
        failed_step: The step that failed, if any.
        error: Message of the failure.
        binding_required: The user must bind a fork before publishing.
        branch: Branch created on the fork, if that step ran.
        commit_sha: Commit created on the branch, if that step ran.
        pr_url: URL of the opened pull request.
    """

    completed_steps: list[PublishStep] = field(default_factory=list)
    failed_step: PublishStep | None = None
    error: str | None = None
    binding_required: bool = False
    branch: str | None = None
    commit_sha: str | None = None
    pr_url: str | None = None
    files: int = 0

    @property
    def success(self) -> bool:
        return self.failed_step is None and self.pr_url is not None

    def summary(self) -> str:
        lines = []
        if self.success:
            lines.append("✓ Published successfully")
        else:
            step = self.failed_step.description if self.failed_step else "?"
            lines.append(f"✗ Publish failed at {step}: {self.error}")

        lines.append(f"  Files: {self.files}")
        if self.branch:
            lines.append(f"  Branch: {self.branch}")
        if self.commit_sha:
            lines.append(f"  Commit: {self.commit_sha[:7]}")
        if self.pr_url:
            lines.append(f"  Pull request: {self.pr_url}")
        if self.binding_required:
            lines.append("  Bind a repository first: byrpublish bind")
        return "\n".join(lines)


def branch_name(username: str, now: datetime) -> str:
    """<username>-<UTC time with milliseconds>, with ':' and '.' made '-'."""
    now = now.astimezone(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S") + f"-{now.microsecond // 1000:03d}Z"
    return f"{username}-{stamp}"


class PublishOrchestrator:
    """Runs the publish sequence for one user at a time."""

    def __init__(
        self,
        store: StagingStorePort,
        github_factory: GitHubFactory,
        config: ArchiveConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.github_factory = github_factory
        self.config = config or ArchiveConfig()
        self.clock = clock
        self._clients: dict[str, GitHubPort] = {}
        self.logger = logging.getLogger("PublishOrchestrator")

    def _github(self, target: PublishTarget) -> GitHubPort:
        if target.token not in self._clients:
            self._clients[target.token] = self.github_factory(target.token)
        return self._clients[target.token]

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def check_binding(self, user: User) -> PublishTarget:
        """
        Resolve the fork ``user`` publishes from.

        Raises:
            BindingRequiredError: If the user has not bound a fork, or the
                bound installation has no repository.
            AuthenticationError: If the user has no GitHub token.
            PublishStepError: If the binding cannot be read.
        """
        if user.id is None:
            raise BindingRequiredError(f"User {user.username} has not been stored")
        try:
            binding = self.store.get_binding(user.id)
        except PublishError as e:
            raise PublishStepError(
                PublishStep.CHECK_BINDING, PublishStep.CHECK_BINDING.default_message, e
            ) from e

        if binding is None or not binding.repository_name:
            raise BindingRequiredError(f"{user.username} has no bound repository")
        if not user.access_token:
            raise AuthenticationError(f"{user.username} has no GitHub access token")

        return PublishTarget(
            owner=binding.owner,
            repo=binding.repository_name,
            token=user.access_token,
            username=user.username,
            user_id=user.id,
        )

    def sync_upstream(self, target: PublishTarget) -> str:
        """Force the fork's default branch to the upstream tip; returns that sha."""
        step = PublishStep.SYNC_UPSTREAM
        github = self._github(target)
        branch = self.config.default_branch
        try:
            upstream = github.get_branch(self.config.upstream_owner, self.config.upstream_repo, branch)
            github.update_ref(
                target.owner, target.repo, f"heads/{branch}", upstream.commit_sha, force=True
            )
        except PublishError as e:
            raise PublishStepError(step, step.default_message, e) from e
        self.logger.info(f"Synced {target.full_name}@{branch} to {upstream.commit_sha[:7]}")
        return upstream.commit_sha

    def create_branch(self, target: PublishTarget) -> str:
        """Create a fresh branch off the fork's default branch; returns its name."""
        step = PublishStep.CREATE_BRANCH
        github = self._github(target)
        name = branch_name(target.username, self.clock())
        try:
            base = github.get_branch(target.owner, target.repo, self.config.default_branch)
            github.create_ref(target.owner, target.repo, f"refs/heads/{name}", base.commit_sha)
        except PublishError as e:
            raise PublishStepError(step, step.default_message, e) from e
        self.logger.info(f"Created branch {name} on {target.full_name}")
        return name

    def commit_files(self, target: PublishTarget, branch: str, changes: list[StagedChange]) -> str:
        """
        Commit ``changes`` to ``branch`` in a single commit; returns its sha.

        Created and modified files are uploaded as blobs, deleted files are
        removed from the tree.
        """
        step = PublishStep.COMMIT_FILES
        if not changes:
            raise PublishStepError(step, NO_CHANGES_MESSAGE)

        github = self._github(target)
        message = generate_commit_message(changes)
        try:
            head = github.get_branch(target.owner, target.repo, branch)

            entries: list[TreeEntry] = []
            for change in changes:
                if change.status is ChangeStatus.DELETED:
                    entries.append(TreeEntry(path=change.path, sha=None))
                else:
                    sha = github.create_blob(target.owner, target.repo, change.content)
                    entries.append(TreeEntry(path=change.path, sha=sha))

            tree = github.create_tree(target.owner, target.repo, head.tree_sha, entries)
            commit = github.create_commit(
                target.owner, target.repo, message.message, tree, [head.commit_sha]
            )
            github.update_ref(target.owner, target.repo, f"heads/{branch}", commit)
        except PublishError as e:
            raise PublishStepError(step, step.default_message, e) from e

        self.logger.info(f"Committed {len(changes)} files to {target.full_name}@{branch}: {commit[:7]}")
        return commit

    def create_pull_request(
        self, target: PublishTarget, branch: str, changes: list[StagedChange]
    ) -> str:
        """Open the pull request upstream, clear the staged changes; returns the PR URL."""
        step = PublishStep.CREATE_PULL_REQUEST
        github = self._github(target)
        message = generate_commit_message(changes)
        try:
            pr = github.create_pull_request(
                self.config.upstream_owner,
                self.config.upstream_repo,
                title=message.title,
                body=message.body,
                head=f"{target.owner}:{branch}",
                base=self.config.default_branch,
            )
            self.store.delete_all_changes(target.user_id)
        except PublishError as e:
            raise PublishStepError(step, step.default_message, e) from e

        self.logger.info(f"Opened pull request {pr.html_url}")
        return pr.html_url

    # -------------------------------------------------------------------------
    # Full run
    # -------------------------------------------------------------------------

    def publish(self, user: User, progress_callback: ProgressCallback | None = None) -> PublishResult:
        """Run every step in order, stopping at the first failure."""
        result = PublishResult()
        total = len(STEPS)

        def begin(step: PublishStep) -> None:
            if progress_callback:
                progress_callback(step.description, STEPS.index(step) + 1, total)
            self.logger.debug(f"Step {STEPS.index(step) + 1}/{total}: {step.value}")

        step = PublishStep.CHECK_BINDING
        try:
            begin(step)
            target = self.check_binding(user)
            changes = self.store.list_changes(target.user_id)
            result.files = len(changes)
            result.completed_steps.append(step)

            step = PublishStep.SYNC_UPSTREAM
            begin(step)
            self.sync_upstream(target)
            result.completed_steps.append(step)

            step = PublishStep.CREATE_BRANCH
            begin(step)
            result.branch = self.create_branch(target)
            result.completed_steps.append(step)

            step = PublishStep.COMMIT_FILES
            begin(step)
            result.commit_sha = self.commit_files(target, result.branch, changes)
            result.completed_steps.append(step)

            step = PublishStep.CREATE_PULL_REQUEST
            begin(step)
            result.pr_url = self.create_pull_request(target, result.branch, changes)
            result.completed_steps.append(step)
        except BindingRequiredError as e:
            result.failed_step = step
            result.error = e.message
            result.binding_required = True
        except PublishStepError as e:
            result.failed_step = e.step
            result.error = e.message
            self.logger.error(str(e))
        except PublishError as e:
            result.failed_step = step
            result.error = e.message or step.default_message
            self.logger.error(f"{step.value} failed: {e}")

        return result
