"""
Domain Entities - metadata records, staged changes and identity records.

A MetadataRecord pairs a kind with exactly one payload type. The mapping
PAYLOAD_TYPES is the single source of truth for that pairing; anything that
dispatches on kind keys its table by RecordKind and is checked against it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from byrpublish.core.exceptions import RecordShapeError

from .enums import ChangeStatus, ConflictType, RecordKind, Semester


METADATA_DIR = "metadata"


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text != "" else None


# =============================================================================
# Payloads
# =============================================================================


@dataclass
class BookData:
    """Payload of a book record."""

    title: str = ""
    authors: list[str] = field(default_factory=list)
    translators: list[str] = field(default_factory=list)
    edition: str | None = None
    publisher: str | None = None
    publish_year: str | None = None
    isbn: list[str] = field(default_factory=list)
    filetype: str = "pdf"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookData:
        return cls(
            title=str(data.get("title") or ""),
            authors=_str_list(data.get("authors")),
            translators=_str_list(data.get("translators")),
            edition=_opt_str(data.get("edition")),
            publisher=_opt_str(data.get("publisher")),
            publish_year=_opt_str(data.get("publish_year")),
            isbn=_str_list(data.get("isbn")),
            filetype=str(data.get("filetype") or "pdf"),
        )


@dataclass
class TestCourse:
    """Course a test paper belongs to."""

    __test__ = False

    name: str = ""
    type: str | None = None


@dataclass
class TestTime:
    """When a test was sat. Every part is optional."""

    __test__ = False

    start: str | None = None
    end: str | None = None
    semester: Semester | None = None
    stage: str | None = None

    def is_empty(self) -> bool:
        return not (self.start or self.end or self.semester or self.stage)


@dataclass
class TestData:
    """Payload of a test (exam paper) record."""

    __test__ = False

    college: list[str] = field(default_factory=list)
    course: TestCourse = field(default_factory=TestCourse)
    time: TestTime = field(default_factory=TestTime)
    filetype: str = "pdf"
    content: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestData:
        course = data.get("course") or {}
        time = data.get("time") or {}
        semester = _opt_str(time.get("semester"))
        return cls(
            college=_str_list(data.get("college")),
            course=TestCourse(
                name=str(course.get("name") or ""),
                type=_opt_str(course.get("type")),
            ),
            time=TestTime(
                start=_opt_str(time.get("start")),
                end=_opt_str(time.get("end")),
                semester=Semester.from_string(semester) if semester else None,
                stage=_opt_str(time.get("stage")),
            ),
            filetype=str(data.get("filetype") or "pdf"),
            content=_str_list(data.get("content")),
        )


@dataclass
class DocCourse:
    """Course a document relates to."""

    name: str = ""
    type: str | None = None


@dataclass
class DocData:
    """Payload of a doc (study material) record."""

    title: str = ""
    course: list[DocCourse] = field(default_factory=list)
    filetype: str = "pdf"
    content: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocData:
        courses = data.get("course") or []
        if isinstance(courses, dict):
            courses = [courses]
        return cls(
            title=str(data.get("title") or ""),
            course=[
                DocCourse(name=str(c.get("name") or ""), type=_opt_str(c.get("type")))
                for c in courses
                if isinstance(c, dict)
            ],
            filetype=str(data.get("filetype") or "pdf"),
            content=_str_list(data.get("content")),
        )


Payload = Union[BookData, TestData, DocData]

PAYLOAD_TYPES: dict[RecordKind, type] = {
    RecordKind.BOOK: BookData,
    RecordKind.TEST: TestData,
    RecordKind.DOC: DocData,
}


# =============================================================================
# Records
# =============================================================================


@dataclass
class MetadataRecord:
    """
    One archive entry: a file identified by its MD5 plus typed metadata.

    The payload type must match the kind; a mismatch raises RecordShapeError.
    """

    id: str
    url: str
    kind: RecordKind
    payload: Payload

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise RecordShapeError(
                f"Record {self.id} of kind '{self.kind.value}' needs a "
                f"{expected.__name__} payload, got {type(self.payload).__name__}"
            )

    @property
    def filename(self) -> str:
        return f"{self.id}.yml"

    @property
    def path(self) -> str:
        """Repository path the record is published under."""
        return f"{METADATA_DIR}/{self.filename}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetadataRecord:
        """
        Build a record from its mapping form ({id, url, type, data}).

        Raises:
            RecordShapeError: If the type is missing or unknown.
        """
        raw_kind = data.get("type")
        if not isinstance(raw_kind, str):
            raise RecordShapeError(f"Record {data.get('id')!r} has no type")
        try:
            kind = RecordKind.from_string(raw_kind)
        except ValueError as e:
            raise RecordShapeError(str(e)) from e

        payload_data = data.get("data") or {}
        if not isinstance(payload_data, dict):
            raise RecordShapeError(f"Record {data.get('id')!r} has a non-mapping data block")

        payload_type = PAYLOAD_TYPES[kind]
        try:
            payload = payload_type.from_dict(payload_data)
        except (AttributeError, ValueError) as e:
            raise RecordShapeError(f"Record {data.get('id')!r}: {e}") from e

        return cls(
            id=str(data.get("id") or ""),
            url=str(data.get("url") or ""),
            kind=kind,
            payload=payload,
        )


@dataclass
class StagedChange:
    """A user's pending, unpublished edit to one metadata record."""

    user_id: int
    md5_hash: str
    status: ChangeStatus
    content: str = ""
    previous_content: str | None = None
    filename: str = ""
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.status.is_staged():
            raise ValueError("A staged change cannot be 'unchanged'")
        if not self.filename:
            self.filename = f"{self.md5_hash}.yml"

    @property
    def record_id(self) -> str:
        return self.md5_hash

    @property
    def path(self) -> str:
        return f"{METADATA_DIR}/{self.filename}"


@dataclass
class ReconciledFile:
    """Merged view of a remote record and the user's staged change for it."""

    id: str
    filename: str
    status: ChangeStatus
    content: str
    previous_content: str | None = None
    has_conflict: bool = False
    conflict_type: ConflictType | None = None
    can_revert: bool = False
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "status": self.status.value,
            "content": self.content,
            "previous_content": self.previous_content,
            "has_conflict": self.has_conflict,
            "conflict_type": self.conflict_type.value if self.conflict_type else None,
            "can_revert": self.can_revert,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# =============================================================================
# Identity
# =============================================================================


@dataclass
class User:
    """A contributor who signed in with GitHub."""

    github_user_id: int
    username: str
    access_token: str = ""
    id: int | None = None


@dataclass
class GitHubInstallation:
    """A GitHub App installation on a contributor's account."""

    installation_id: int
    account_login: str
    account_type: str = "User"
    repository_name: str | None = None
    is_suspended: bool = False
    id: int | None = None

    @property
    def repository_full_name(self) -> str | None:
        if not self.repository_name:
            return None
        return f"{self.account_login}/{self.repository_name}"


@dataclass
class RepositoryBinding:
    """Link between a user and the installation whose fork they publish to."""

    user_id: int
    installation: GitHubInstallation
    id: int | None = None
    created_at: datetime | None = None

    @property
    def owner(self) -> str:
        return self.installation.account_login

    @property
    def repository_name(self) -> str | None:
        return self.installation.repository_name
