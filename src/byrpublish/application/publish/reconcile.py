"""
Reconciliation - merge the remote snapshot with a user's staged changes.

For every remote record:

- no staged change: unchanged, content is the serialized remote record
- staged deletion: content is the remote record serialized now; if that
  differs from what the user saw when deleting, it is a deletion conflict
- staged modification: the staged content; a missing previous content is
  filled from the remote record
- staged creation: the id already exists upstream, a content conflict

Staged creations whose id is not upstream are appended as plain creations.
Staged modifications or deletions whose record has since vanished upstream
are not shown.

The result is sorted by id and depends only on its inputs, so calling it
twice with the same inputs yields identical lists.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from byrpublish.adapters.parsers.yaml_codec import serialize_record
from byrpublish.core.domain.entities import (
    MetadataRecord,
    ReconciledFile,
    StagedChange,
)
from byrpublish.core.domain.enums import ChangeStatus, ConflictType


Serializer = Callable[[MetadataRecord], str]


class Reconciler:
    """Builds the merged file view shown to a contributor."""

    def __init__(self, serializer: Serializer = serialize_record):
        self._serialize = serializer
        self.logger = logging.getLogger("Reconciler")

    def reconcile(
        self,
        remote_snapshot: Iterable[MetadataRecord],
        staged: Iterable[StagedChange],
    ) -> list[ReconciledFile]:
        changes: dict[str, StagedChange] = {}
        for change in staged:
            changes.setdefault(change.md5_hash, change)

        remote: dict[str, MetadataRecord] = {}
        for record in remote_snapshot:
            if record.id in remote:
                self.logger.warning(f"Duplicate remote record {record.id}; keeping the first")
                continue
            remote[record.id] = record

        files = [self._merge(record, changes.get(record_id)) for record_id, record in remote.items()]

        for record_id, change in changes.items():
            if record_id in remote:
                continue
            if change.status is ChangeStatus.CREATED:
                files.append(
                    ReconciledFile(
                        id=record_id,
                        filename=change.filename,
                        status=ChangeStatus.CREATED,
                        content=change.content,
                        can_revert=True,
                        updated_at=change.updated_at,
                    )
                )
            else:
                self.logger.debug(
                    f"Staged {change.status.value} for {record_id} has no remote record; hidden"
                )

        files.sort(key=lambda f: f.id)
        return files

    def _merge(self, record: MetadataRecord, change: StagedChange | None) -> ReconciledFile:
        if change is None:
            return ReconciledFile(
                id=record.id,
                filename=record.filename,
                status=ChangeStatus.UNCHANGED,
                content=self._serialize(record),
            )

        if change.status is ChangeStatus.DELETED:
            current = self._serialize(record)
            previous = change.previous_content or ""
            conflict = current.strip() != previous.strip()
            return ReconciledFile(
                id=record.id,
                filename=change.filename,
                status=ChangeStatus.DELETED,
                content=current,
                previous_content=change.previous_content,
                has_conflict=conflict,
                conflict_type=ConflictType.DELETION if conflict else None,
                can_revert=True,
                updated_at=change.updated_at,
            )

        if change.status is ChangeStatus.MODIFIED:
            return ReconciledFile(
                id=record.id,
                filename=change.filename,
                status=ChangeStatus.MODIFIED,
                content=change.content,
                previous_content=change.previous_content or self._serialize(record),
                can_revert=True,
                updated_at=change.updated_at,
            )

        return ReconciledFile(
            id=record.id,
            filename=change.filename,
            status=ChangeStatus.CREATED,
            content=change.content,
            has_conflict=True,
            conflict_type=ConflictType.CONTENT,
            can_revert=True,
            updated_at=change.updated_at,
        )

    @staticmethod
    def find(files: Iterable[ReconciledFile], record_id: str) -> ReconciledFile | None:
        for file in files:
            if file.id == record_id:
                return file
        return None


def reconcile(
    remote_snapshot: Iterable[MetadataRecord],
    staged: Iterable[StagedChange],
    serializer: Serializer = serialize_record,
) -> list[ReconciledFile]:
    """Merge ``remote_snapshot`` with ``staged``; see Reconciler."""
    return Reconciler(serializer).reconcile(remote_snapshot, staged)
