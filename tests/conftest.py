"""
Shared pytest fixtures for the byrpublish test suite.

Fixture Categories:
- Domain: sample book, test and doc records
- Store: in-memory SQLite store with a signed-in user
- Feed: a static metadata feed
- Mocks: a MagicMock GitHub port with sensible return values
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from byrpublish.adapters.store import SqlAlchemyStagingStore, create_store
from byrpublish.core.domain.entities import (
    BookData,
    DocCourse,
    DocData,
    MetadataRecord,
    TestCourse,
    TestData,
    TestTime,
    User,
)
from byrpublish.core.domain.enums import RecordKind, Semester
from byrpublish.core.ports.github import (
    BranchInfo,
    GitHubPort,
    GitHubUserInfo,
    PullRequestInfo,
    RepositoryInfo,
)
from byrpublish.core.ports.metadata_feed import MetadataFeedPort, MetadataSnapshot


BOOK_ID = "0123456789abcdef0123456789abcdef"
TEST_ID = "fedcba9876543210fedcba9876543210"
DOC_ID = "00000000000000000000000000000abc"
NEW_ID = "11111111111111111111111111111111"

# Pinned "today" for validators that depend on the calendar
TODAY = date(2024, 9, 1)


def file_url(record_id: str, ext: str = "pdf") -> str:
    return f"https://byrdocs.org/files/{record_id}.{ext}"


# =============================================================================
# Domain
# =============================================================================


def _book(record_id: str = BOOK_ID, title: str = "高等数学", **overrides) -> MetadataRecord:
    data = {
        "title": title,
        "authors": ["同济大学数学系"],
        "publisher": "高等教育出版社",
        "publish_year": "2014",
        "edition": "7",
        "isbn": ["978-0-306-40615-7"],
    }
    data.update(overrides)
    return MetadataRecord(
        id=record_id, url=file_url(record_id), kind=RecordKind.BOOK, payload=BookData(**data)
    )


def _paper(record_id: str = TEST_ID, **overrides) -> MetadataRecord:
    data = {
        "college": ["计算机学院"],
        "course": TestCourse(name="数据结构", type="本科"),
        "time": TestTime(start="2022", end="2023", semester=Semester.FIRST, stage="期末"),
        "content": ["原题", "答案"],
    }
    data.update(overrides)
    return MetadataRecord(
        id=record_id, url=file_url(record_id), kind=RecordKind.TEST, payload=TestData(**data)
    )


def _doc(record_id: str = DOC_ID, ext: str = "zip", **overrides) -> MetadataRecord:
    data = {
        "title": "数据结构复习资料",
        "course": [DocCourse(name="数据结构", type="本科")],
        "filetype": ext,
        "content": ["知识点"],
    }
    data.update(overrides)
    return MetadataRecord(
        id=record_id, url=file_url(record_id, ext), kind=RecordKind.DOC, payload=DocData(**data)
    )


@pytest.fixture
def book_factory():
    """Build book records; keyword arguments override payload fields."""
    return _book


@pytest.fixture
def paper_factory():
    """Build test-paper records; keyword arguments override payload fields."""
    return _paper


@pytest.fixture
def doc_factory():
    return _doc


@pytest.fixture
def book() -> MetadataRecord:
    return _book()


@pytest.fixture
def paper() -> MetadataRecord:
    return _paper()


@pytest.fixture
def doc() -> MetadataRecord:
    return _doc()


# =============================================================================
# Feed
# =============================================================================


class StaticFeed(MetadataFeedPort):
    """Feed that serves a fixed list of records and counts fetches."""

    def __init__(self, records: list[MetadataRecord] | None = None):
        self.records = list(records or [])
        self.fetch_count = 0

    def fetch(self) -> MetadataSnapshot:
        self.fetch_count += 1
        return MetadataSnapshot(records=list(self.records))


@pytest.fixture
def remote_records() -> list[MetadataRecord]:
    return [_book(), _paper(), _doc()]


@pytest.fixture
def feed(remote_records) -> StaticFeed:
    return StaticFeed(remote_records)


# =============================================================================
# Store
# =============================================================================


@pytest.fixture
def store() -> SqlAlchemyStagingStore:
    """Fresh in-memory SQLite store."""
    return create_store("sqlite://")


@pytest.fixture
def user(store) -> User:
    """A signed-in contributor."""
    return store.upsert_user(github_user_id=42, username="octocat", access_token="gho_test")


# =============================================================================
# GitHub
# =============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 9, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)


@pytest.fixture
def mock_github() -> MagicMock:
    """GitHubPort mock whose calls all succeed."""
    github = MagicMock(spec=GitHubPort)
    github.get_authenticated_user.return_value = GitHubUserInfo(id=42, login="octocat")
    github.get_branch.side_effect = lambda owner, repo, branch: BranchInfo(
        name=branch, commit_sha=f"sha-{owner}-{branch}", tree_sha=f"tree-{owner}-{branch}"
    )
    github.create_blob.side_effect = lambda owner, repo, content: f"blob-{len(content)}"
    github.create_tree.return_value = "new-tree"
    github.create_commit.return_value = "c0ffee1234567"
    github.create_pull_request.return_value = PullRequestInfo(
        number=7, html_url="https://github.com/byrdocs/byrdocs-archive/pull/7"
    )
    github.list_user_repositories.return_value = [
        RepositoryInfo(
            full_name="octocat/byrdocs-archive",
            name="byrdocs-archive",
            owner="octocat",
            fork=True,
            permissions={"push": True},
        ),
    ]
    return github


@pytest.fixture
def github_factory(mock_github):
    """Factory that hands out ``mock_github`` and records the tokens it saw."""
    factory = MagicMock(return_value=mock_github)
    return factory
