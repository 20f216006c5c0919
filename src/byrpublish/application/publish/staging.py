"""
Staging Service - create, edit, delete and revert a user's pending changes.

Changes are keyed by (user, record id). The status of a change follows
what the user did first:

- a record that was created stays "created" however often it is edited
- editing a "modified" or "deleted" record makes it "modified"
- deleting a record that only exists locally drops the change entirely
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from byrpublish.adapters.parsers.yaml_codec import serialize_record
from byrpublish.core.domain.entities import (
    MetadataRecord,
    ReconciledFile,
    StagedChange,
    User,
)
from byrpublish.core.domain.enums import ChangeStatus
from byrpublish.core.exceptions import RecordNotFoundError, RecordValidationError
from byrpublish.core.ports.metadata_feed import MetadataFeedPort
from byrpublish.core.ports.staging_store import StagingStorePort
from byrpublish.core.validation import FieldError, validate_record

from .reconcile import Reconciler


class StagingService:
    """Application service behind every edit a contributor makes."""

    def __init__(
        self,
        store: StagingStorePort,
        feed: MetadataFeedPort,
        serializer: Callable[[MetadataRecord], str] = serialize_record,
        today: Callable[[], date] | None = None,
    ):
        self.store = store
        self.feed = feed
        self.serializer = serializer
        self.reconciler = Reconciler(serializer)
        self._today = today or date.today
        self.logger = logging.getLogger("StagingService")

    @staticmethod
    def _user_id(user: User) -> int:
        if user.id is None:
            raise ValueError(f"User {user.username} has not been stored")
        return user.id

    def _remote(self, record_id: str) -> MetadataRecord | None:
        return self.feed.fetch().get(record_id)

    def _validated(self, record: MetadataRecord) -> str:
        errors = validate_record(record, self._today())
        if errors:
            raise RecordValidationError(errors)
        return self.serializer(record)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def reconciled_view(self, user: User) -> list[ReconciledFile]:
        snapshot = self.feed.fetch()
        changes = self.store.list_changes(self._user_id(user))
        return self.reconciler.reconcile(snapshot.records, changes)

    def get_file(self, user: User, record_id: str) -> ReconciledFile | None:
        return Reconciler.find(self.reconciled_view(user), record_id)

    def list_changes(self, user: User) -> list[StagedChange]:
        """Staged changes, most recently updated first."""
        return self.store.list_changes(self._user_id(user))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def stage_creation(self, user: User, record: MetadataRecord) -> StagedChange:
        """
        Stage a new record.

        Re-staging an id that already has a change replaces its content and
        keeps its status, except that a staged deletion becomes a
        modification of the record it would have deleted.

        Raises:
            RecordValidationError: If the record fails validation.
        """
        content = self._validated(record)
        user_id = self._user_id(user)
        existing = self.store.get_change(user_id, record.id)
        if existing is not None:
            if existing.status is ChangeStatus.DELETED:
                existing.status = ChangeStatus.MODIFIED
            existing.content = content
            change = existing
        else:
            change = StagedChange(
                user_id=user_id,
                md5_hash=record.id,
                status=ChangeStatus.CREATED,
                content=content,
                filename=record.filename,
            )
        saved = self.store.save_change(change)
        self.logger.info(f"Staged {saved.status.value} {record.id} for {user.username}")
        return saved

    def stage_edit(self, user: User, record_id: str, record: MetadataRecord) -> StagedChange:
        """
        Stage an edit of ``record_id``.

        Raises:
            RecordValidationError: If the record fails validation or its id
                differs from ``record_id``.
            RecordNotFoundError: If there is neither a staged change nor a
                remote record for ``record_id``.
        """
        if record.id != record_id:
            raise RecordValidationError([FieldError("file-id", "不能修改文件 MD5")])
        content = self._validated(record)
        user_id = self._user_id(user)

        existing = self.store.get_change(user_id, record_id)
        if existing is not None:
            if existing.status is not ChangeStatus.CREATED:
                existing.status = ChangeStatus.MODIFIED
            existing.content = content
            change = existing
        else:
            remote = self._remote(record_id)
            if remote is None:
                raise RecordNotFoundError(f"No record {record_id} to edit", key=record_id)
            change = StagedChange(
                user_id=user_id,
                md5_hash=record_id,
                status=ChangeStatus.MODIFIED,
                content=content,
                previous_content=self.serializer(remote),
                filename=remote.filename,
            )

        saved = self.store.save_change(change)
        self.logger.info(f"Staged {saved.status.value} {record_id} for {user.username}")
        return saved

    def stage_deletion(self, user: User, record_id: str) -> StagedChange | None:
        """
        Stage deletion of ``record_id``.

        Returns the staged deletion, or None when the record only existed as
        a local change and that change was dropped instead.

        Raises:
            RecordNotFoundError: If the record exists neither remotely nor
                as a staged change.
        """
        user_id = self._user_id(user)
        remote = self._remote(record_id)
        if remote is not None:
            change = StagedChange(
                user_id=user_id,
                md5_hash=record_id,
                status=ChangeStatus.DELETED,
                content="",
                previous_content=self.serializer(remote),
                filename=remote.filename,
            )
            saved = self.store.save_change(change)
            self.logger.info(f"Staged deletion of {record_id} for {user.username}")
            return saved

        if self.store.delete_change(user_id, record_id):
            self.logger.info(f"Dropped local-only change {record_id} for {user.username}")
            return None

        raise RecordNotFoundError(f"No record {record_id} to delete", key=record_id)

    def revert(self, user: User, record_id: str) -> bool:
        """Discard the change for ``record_id``. Returns False if there was none."""
        removed = self.store.delete_change(self._user_id(user), record_id)
        if removed:
            self.logger.info(f"Reverted {record_id} for {user.username}")
        return removed

    def revert_all(self, user: User) -> int:
        return self.store.delete_all_changes(self._user_id(user))
