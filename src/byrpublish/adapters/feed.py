"""
Metadata feed adapters - the published archive snapshot over HTTP.

HttpMetadataFeed fetches and decodes the JSON document on every call.
CachedMetadataFeed wraps any feed with an injected CacheBackend so the
snapshot is refreshed at most once per TTL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from byrpublish.adapters.cache import CacheBackend
from byrpublish.core.domain.entities import DocData, MetadataRecord, TestData
from byrpublish.core.exceptions import FeedError, RecordShapeError
from byrpublish.core.ports.metadata_feed import MetadataFeedPort, MetadataSnapshot


DEFAULT_METADATA_URL = "https://files.byrdocs.org/metadata2.json"


def _course_names(record: MetadataRecord) -> list[str]:
    payload = record.payload
    if isinstance(payload, TestData):
        return [payload.course.name]
    if isinstance(payload, DocData):
        return [c.name for c in payload.course]
    return []


class HttpMetadataFeed(MetadataFeedPort):
    """
    Reads the archive snapshot from a JSON URL.

    The document is either a bare array of records or an object with the
    records under "metadata" (or "files") and an optional "courses" list.
    When no course list is published it is derived from the records.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        url: str = DEFAULT_METADATA_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self.logger = logging.getLogger("HttpMetadataFeed")

    def fetch(self) -> MetadataSnapshot:
        try:
            response = self._session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except requests.exceptions.RequestException as e:
            raise FeedError(f"Failed to fetch metadata from {self.url}", cause=e) from e
        except ValueError as e:
            raise FeedError(f"Metadata at {self.url} is not valid JSON", cause=e) from e

        snapshot = self.decode(document)
        self.logger.info(f"Fetched {len(snapshot.records)} records from {self.url}")
        return snapshot

    def decode(self, document: Any) -> MetadataSnapshot:
        """Turn the decoded JSON document into a snapshot."""
        courses: list[str] | None = None
        if isinstance(document, list):
            entries = document
        elif isinstance(document, dict):
            entries = document.get("metadata") or document.get("files") or []
            if isinstance(document.get("courses"), list):
                courses = [str(c) for c in document["courses"]]
        else:
            raise FeedError(f"Unexpected metadata document type: {type(document).__name__}")

        records: list[MetadataRecord] = []
        for entry in entries:
            if not isinstance(entry, dict):
                self.logger.warning(f"Skipping non-object metadata entry: {entry!r:.80}")
                continue
            try:
                records.append(MetadataRecord.from_dict(entry))
            except (RecordShapeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed metadata entry {entry.get('id')!r}: {e}")

        if courses is None:
            names = {n.strip() for r in records for n in _course_names(r) if n and n.strip()}
            courses = sorted(names)

        return MetadataSnapshot(
            records=records,
            courses=courses,
            fetched_at=datetime.now(timezone.utc),
        )


class CachedMetadataFeed(MetadataFeedPort):
    """Serves the wrapped feed's snapshot from cache until the TTL lapses."""

    CACHE_KEY = "metadata:snapshot"

    def __init__(self, feed: MetadataFeedPort, cache: CacheBackend, ttl: float | None = None):
        self._feed = feed
        self._cache = cache
        self.ttl = ttl
        self.logger = logging.getLogger("CachedMetadataFeed")

    def fetch(self) -> MetadataSnapshot:
        cached = self._cache.get(self.CACHE_KEY)
        if cached is not None:
            self.logger.debug(
                f"Serving cached snapshot (hit rate {self._cache.stats.hit_rate:.0%})"
            )
            return cached

        snapshot = self._feed.fetch()
        self._cache.set(self.CACHE_KEY, snapshot, ttl=self.ttl)
        self.logger.debug("Snapshot cache miss", extra={"cache": self._cache.stats.to_dict()})
        return snapshot

    def invalidate(self) -> None:
        self._cache.delete(self.CACHE_KEY)
        self._feed.invalidate()
