"""
Metadata Feed Port - read-only snapshot of the published archive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from byrpublish.core.domain.entities import MetadataRecord


@dataclass
class MetadataSnapshot:
    """Every published record plus the known course names."""

    records: list[MetadataRecord] = field(default_factory=list)
    courses: list[str] = field(default_factory=list)
    fetched_at: datetime | None = None

    def by_id(self) -> dict[str, MetadataRecord]:
        return {record.id: record for record in self.records}

    def get(self, record_id: str) -> MetadataRecord | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None


class MetadataFeedPort(ABC):
    """Source of the current archive snapshot."""

    @abstractmethod
    def fetch(self) -> MetadataSnapshot:
        """
        Fetch the snapshot.

        Raises:
            FeedError: If the feed cannot be read or decoded.
        """
        ...

    def invalidate(self) -> None:
        """Drop any cached snapshot. No-op for uncached feeds."""
        return None
