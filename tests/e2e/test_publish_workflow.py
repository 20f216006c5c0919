"""
End-to-end workflow tests for byrpublish.

These tests drive a contributor session from staging through reconciliation
to a published pull request, using the SQLite store, a static feed and a
mocked GitHub.

Run with:
    pytest tests/e2e/ -v -m e2e
"""

from datetime import date

import pytest

from byrpublish.adapters.parsers import parse, serialize_record
from byrpublish.application.publish import PublishOrchestrator, PublishStep, StagingService
from byrpublish.core.domain.entities import GitHubInstallation
from byrpublish.core.domain.enums import ChangeStatus, ConflictType
from byrpublish.core.exceptions import RecordValidationError


pytestmark = pytest.mark.e2e

NEW_ID = "11111111111111111111111111111111"


@pytest.fixture
def staging(store, feed):
    return StagingService(store, feed, today=lambda: date(2024, 9, 1))


@pytest.fixture
def orchestrator(store, github_factory, fixed_now):
    return PublishOrchestrator(store, github_factory, clock=lambda: fixed_now)


@pytest.fixture
def contributor(store, user):
    store.upsert_installation(
        GitHubInstallation(installation_id=100, account_login="octocat", repository_name="byrdocs-archive")
    )
    store.replace_binding(user.id, 100)
    return user


class TestStageAndPublishWorkflow:
    """A contributor creates, edits and deletes records, then publishes."""

    def test_full_session(self, staging, orchestrator, contributor, store, mock_github, book_factory, book, paper):
        # Stage one change of each kind
        staging.stage_creation(contributor, book_factory(NEW_ID, title="离散数学"))
        staging.stage_edit(contributor, book.id, book_factory(title="高等数学（上册）"))
        staging.stage_deletion(contributor, paper.id)

        view = {f.id: f for f in staging.reconciled_view(contributor)}
        assert view[NEW_ID].status is ChangeStatus.CREATED
        assert view[book.id].status is ChangeStatus.MODIFIED
        assert view[book.id].previous_content == serialize_record(book)
        assert view[paper.id].status is ChangeStatus.DELETED
        assert not any(f.has_conflict for f in view.values())

        steps = []
        result = orchestrator.publish(contributor, lambda message, current, total: steps.append(current))

        assert result.success
        assert result.completed_steps == list(PublishStep)
        assert steps == [1, 2, 3, 4, 5]
        assert result.files == 3

        # One blob per created or modified file, a null sha per deletion
        entries = {e.path: e.sha for e in mock_github.create_tree.call_args.args[3]}
        assert set(entries) == {
            f"metadata/{NEW_ID}.yml",
            f"metadata/{book.id}.yml",
            f"metadata/{paper.id}.yml",
        }
        assert entries[f"metadata/{paper.id}.yml"] is None
        assert mock_github.create_blob.call_count == 2

        pr = mock_github.create_pull_request.call_args
        assert pr.kwargs["title"] == "创建了 1 个文件，修改了 1 个文件，删除了 1 个文件"
        assert "- 创建了 离散数学" in pr.kwargs["body"]
        assert pr.kwargs["head"] == f"octocat:{result.branch}"

        # Publishing clears the staging area
        assert store.list_changes(contributor.id) == []
        assert all(f.status is ChangeStatus.UNCHANGED for f in staging.reconciled_view(contributor))

    def test_committed_content_parses_back(self, staging, orchestrator, contributor, mock_github, book_factory):
        """The blob pushed upstream is the canonical text of the staged record."""
        record = book_factory(NEW_ID, title="离散数学")
        staging.stage_creation(contributor, record)

        assert orchestrator.publish(contributor).success

        content = mock_github.create_blob.call_args.args[2]
        assert content == serialize_record(record)
        assert parse(content) == record

    def test_invalid_record_never_reaches_github(self, staging, orchestrator, contributor, mock_github, book_factory):
        with pytest.raises(RecordValidationError) as exc_info:
            staging.stage_creation(contributor, book_factory(NEW_ID, authors=[]))
        assert "book-authors" in exc_info.value.field_ids

        result = orchestrator.publish(contributor)
        assert result.failed_step is PublishStep.COMMIT_FILES
        mock_github.create_blob.assert_not_called()


class TestUpstreamDriftWorkflow:
    """Upstream changes between staging and review surface as conflicts."""

    def test_deletion_conflict_after_upstream_edit(self, staging, contributor, feed, book_factory, book):
        staging.stage_deletion(contributor, book.id)

        feed.records = [book_factory(title="高等数学（第八版）") if r.id == book.id else r for r in feed.records]

        deleted = staging.get_file(contributor, book.id)
        assert deleted.has_conflict
        assert deleted.conflict_type is ConflictType.DELETION
        assert "高等数学（第八版）" in deleted.content

    def test_creation_conflict_after_upstream_adds_same_file(self, staging, contributor, feed, book_factory):
        staging.stage_creation(contributor, book_factory(NEW_ID, title="离散数学"))
        assert not staging.get_file(contributor, NEW_ID).has_conflict

        feed.records.append(book_factory(NEW_ID, title="离散数学"))

        created = staging.get_file(contributor, NEW_ID)
        assert created.conflict_type is ConflictType.CONTENT

    def test_revert_resolves_conflict(self, staging, contributor, feed, book_factory, book):
        staging.stage_deletion(contributor, book.id)
        feed.records = [book_factory(title="高等数学（第八版）") if r.id == book.id else r for r in feed.records]

        assert staging.revert(contributor, book.id)
        assert staging.get_file(contributor, book.id).status is ChangeStatus.UNCHANGED
