"""
Tests for the staging service.

Uses the in-memory store and a static feed holding one book, one test and
one doc.
"""

from datetime import date

import pytest

from byrpublish.adapters.parsers import serialize_record
from byrpublish.application.publish.staging import StagingService
from byrpublish.core.domain.entities import User
from byrpublish.core.domain.enums import ChangeStatus, ConflictType
from byrpublish.core.exceptions import RecordNotFoundError, RecordValidationError


NEW_ID = "11111111111111111111111111111111"


@pytest.fixture
def service(store, feed):
    return StagingService(store, feed, today=lambda: date(2024, 9, 1))


@pytest.fixture
def new_book(book_factory):
    return book_factory(NEW_ID, title="离散数学")


# =============================================================================
# Creation
# =============================================================================


class TestStageCreation:
    """Tests for stage_creation."""

    def test_creates(self, service, user, new_book):
        """A valid new record is staged as created with canonical content."""
        change = service.stage_creation(user, new_book)

        assert change.status is ChangeStatus.CREATED
        assert change.content == serialize_record(new_book)
        assert change.previous_content is None
        assert change.filename == f"{NEW_ID}.yml"

    def test_invalid_record_rejected(self, service, user, book_factory, store):
        """Validation failures carry field ids and nothing is stored."""
        record = book_factory(NEW_ID, title=" ", isbn=["123"])

        with pytest.raises(RecordValidationError) as exc_info:
            service.stage_creation(user, record)

        fields = [e.field_id for e in exc_info.value.errors]
        assert "book-title" in fields
        assert "book-isbn" in fields
        assert store.list_changes(user.id) == []

    def test_restage_keeps_status(self, service, user, new_book, book_factory):
        """Staging the same id again replaces content, keeps status."""
        service.stage_creation(user, new_book)
        change = service.stage_creation(user, book_factory(NEW_ID, title="离散数学（第二版）"))
        assert change.status is ChangeStatus.CREATED
        assert "第二版" in change.content
        assert len(service.list_changes(user)) == 1

    def test_create_over_staged_deletion_becomes_modified(self, service, user, store, book, book_factory):
        """Staging a record whose deletion is staged keeps the record, as an edit."""
        deleted = service.stage_deletion(user, book.id)

        change = service.stage_creation(user, book_factory(title="高等数学（上册）"))

        assert change.status is ChangeStatus.MODIFIED
        assert "高等数学（上册）" in change.content
        assert change.previous_content == deleted.previous_content
        stored = store.get_change(user.id, book.id)
        assert stored.status is ChangeStatus.MODIFIED

        file = service.get_file(user, book.id)
        assert file.status is ChangeStatus.MODIFIED
        assert not file.has_conflict

    def test_creating_existing_id_conflicts(self, service, user, book_factory, book):
        """Creating an id that is already upstream shows as a conflict."""
        service.stage_creation(user, book_factory(book.id, title="同一个文件"))
        file = service.get_file(user, book.id)
        assert file.has_conflict
        assert file.conflict_type is ConflictType.CONTENT

    def test_unsaved_user(self, service, new_book):
        """Users must be stored before staging."""
        with pytest.raises(ValueError):
            service.stage_creation(User(github_user_id=1, username="ghost"), new_book)


# =============================================================================
# Edits
# =============================================================================


class TestStageEdit:
    """Tests for stage_edit."""

    def test_edit_remote(self, service, user, book, book_factory):
        """Editing an upstream record records what it looked like."""
        change = service.stage_edit(user, book.id, book_factory(title="高等数学（上册）"))

        assert change.status is ChangeStatus.MODIFIED
        assert change.previous_content == serialize_record(book)
        assert "上册" in change.content

    def test_edit_created_stays_created(self, service, user, new_book, book_factory):
        """Editing a local creation keeps it a creation."""
        service.stage_creation(user, new_book)
        change = service.stage_edit(user, NEW_ID, book_factory(NEW_ID, title="改名"))
        assert change.status is ChangeStatus.CREATED
        assert "改名" in change.content

    def test_edit_deleted_becomes_modified(self, service, user, book, book_factory):
        """Editing a staged deletion turns it back into a modification."""
        service.stage_deletion(user, book.id)
        change = service.stage_edit(user, book.id, book_factory(title="恢复"))
        assert change.status is ChangeStatus.MODIFIED
        assert change.previous_content == serialize_record(book)

    def test_edit_unknown(self, service, user, new_book):
        """Editing a record that exists nowhere fails."""
        with pytest.raises(RecordNotFoundError):
            service.stage_edit(user, NEW_ID, new_book)

    def test_id_cannot_change(self, service, user, book, new_book):
        """The record id is fixed by the file."""
        with pytest.raises(RecordValidationError) as exc_info:
            service.stage_edit(user, book.id, new_book)
        assert exc_info.value.errors[0].field_id == "file-id"


# =============================================================================
# Deletion and revert
# =============================================================================


class TestStageDeletion:
    """Tests for stage_deletion, revert and revert_all."""

    def test_delete_remote(self, service, user, paper):
        """Deleting an upstream record stages a clean deletion."""
        change = service.stage_deletion(user, paper.id)

        assert change.status is ChangeStatus.DELETED
        assert change.content == ""
        assert change.previous_content == serialize_record(paper)
        file = service.get_file(user, paper.id)
        assert file.status is ChangeStatus.DELETED
        assert not file.has_conflict

    def test_delete_local_only_drops_change(self, service, user, new_book, store):
        """Deleting a local creation just forgets it."""
        service.stage_creation(user, new_book)
        assert service.stage_deletion(user, NEW_ID) is None
        assert store.get_change(user.id, NEW_ID) is None

    def test_delete_unknown(self, service, user):
        with pytest.raises(RecordNotFoundError):
            service.stage_deletion(user, NEW_ID)

    def test_deletion_conflict_after_upstream_change(self, service, user, feed, book, book_factory):
        """If upstream changes after a deletion is staged, it conflicts."""
        service.stage_deletion(user, book.id)
        feed.records[0] = book_factory(title="上游改过了")

        file = service.get_file(user, book.id)
        assert file.has_conflict
        assert file.conflict_type is ConflictType.DELETION
        assert "上游改过了" in file.content

    def test_revert(self, service, user, book):
        """Reverting restores the upstream view."""
        service.stage_deletion(user, book.id)
        assert service.revert(user, book.id) is True
        assert service.revert(user, book.id) is False
        assert service.get_file(user, book.id).status is ChangeStatus.UNCHANGED

    def test_revert_all(self, service, user, book, paper, new_book):
        service.stage_deletion(user, book.id)
        service.stage_deletion(user, paper.id)
        service.stage_creation(user, new_book)
        assert service.revert_all(user) == 3
        assert service.list_changes(user) == []

    def test_revert_local_creation_removes_it_from_view(self, service, user, new_book):
        """A reverted creation has no remote record, so it leaves the view."""
        service.stage_creation(user, new_book)
        assert service.get_file(user, NEW_ID) is not None

        assert service.revert(user, NEW_ID) is True

        assert service.get_file(user, NEW_ID) is None
        assert NEW_ID not in [f.id for f in service.reconciled_view(user)]

    def test_revert_all_restores_remote_view(self, service, user, book, paper, new_book, remote_records):
        service.stage_deletion(user, book.id)
        service.stage_creation(user, new_book)
        service.revert_all(user)

        files = service.reconciled_view(user)
        assert sorted(f.id for f in files) == sorted(r.id for r in remote_records)
        assert all(f.status is ChangeStatus.UNCHANGED for f in files)


class TestReconciledView:
    """Tests for the merged view."""

    def test_view_covers_remote_and_local(self, service, user, new_book, feed):
        """Remote records and local creations are listed together."""
        service.stage_creation(user, new_book)
        files = service.reconciled_view(user)

        assert len(files) == 4
        assert [f.id for f in files] == sorted(f.id for f in files)
        assert feed.fetch_count == 1

    def test_get_file_missing(self, service, user):
        assert service.get_file(user, NEW_ID) is None
