"""
Domain enums - record kinds, change statuses, conflicts and option sets.
"""

from __future__ import annotations

from enum import Enum


SCHEMA_BASE_URL = "https://byrdocs.org/schema"

TEST_CONTENT_OPTIONS: tuple[str, ...] = ("原题", "答案")
DOC_CONTENT_OPTIONS: tuple[str, ...] = ("思维导图", "题库", "答案", "知识点", "课件")
TEST_STAGE_OPTIONS: tuple[str, ...] = ("期中", "期末")
COURSE_TYPE_OPTIONS: tuple[str, ...] = ("本科", "研究生")


class RecordKind(Enum):
    """Closed set of archive record kinds."""

    BOOK = "book"
    TEST = "test"
    DOC = "doc"

    @classmethod
    def from_string(cls, value: str) -> RecordKind:
        """
        Parse a kind from its wire name.

        Raises:
            ValueError: If the value is not a known kind.
        """
        normalized = value.strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"Unknown record kind: {value!r}")

    @property
    def schema_url(self) -> str:
        """JSON schema referenced from the YAML header comment."""
        return f"{SCHEMA_BASE_URL}/{self.value}.yaml"

    @property
    def display_name(self) -> str:
        """Label used in validation messages."""
        return {
            RecordKind.BOOK: "书籍",
            RecordKind.TEST: "试题",
            RecordKind.DOC: "资料",
        }[self]

    @property
    def type_label(self) -> str:
        """Label used in file listings."""
        return {
            RecordKind.BOOK: "书籍",
            RecordKind.TEST: "试卷",
            RecordKind.DOC: "资料",
        }[self]

    @property
    def allowed_extensions(self) -> tuple[str, ...]:
        """File extensions an archive file of this kind may have."""
        return {
            RecordKind.BOOK: ("pdf",),
            RecordKind.TEST: ("pdf",),
            RecordKind.DOC: ("pdf", "zip"),
        }[self]

    @property
    def allowed_formats_label(self) -> str:
        return " 或 ".join(ext.upper() for ext in self.allowed_extensions)


class ChangeStatus(Enum):
    """Status of a staged or reconciled file."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"

    @classmethod
    def from_string(cls, value: str) -> ChangeStatus:
        normalized = value.strip().lower()
        for status in cls:
            if status.value == normalized:
                return status
        raise ValueError(f"Unknown change status: {value!r}")

    @property
    def verb(self) -> str:
        """Verb used in commit messages."""
        return {
            ChangeStatus.CREATED: "创建了",
            ChangeStatus.MODIFIED: "修改了",
            ChangeStatus.DELETED: "删除了",
            ChangeStatus.UNCHANGED: "",
        }[self]

    @property
    def symbol(self) -> str:
        return {
            ChangeStatus.CREATED: "+",
            ChangeStatus.MODIFIED: "~",
            ChangeStatus.DELETED: "-",
            ChangeStatus.UNCHANGED: " ",
        }[self]

    def is_staged(self) -> bool:
        """Whether this status can be stored as a staged change."""
        return self is not ChangeStatus.UNCHANGED


class ConflictType(Enum):
    """Why a staged change disagrees with the remote snapshot."""

    CONTENT = "content"
    DELETION = "deletion"

    @property
    def description(self) -> str:
        return {
            ConflictType.CONTENT: "a record with this id already exists upstream",
            ConflictType.DELETION: "the upstream record changed since it was deleted",
        }[self]


class Semester(Enum):
    """Academic semester of a test paper."""

    FIRST = "First"
    SECOND = "Second"

    @classmethod
    def from_string(cls, value: str) -> Semester:
        mapping = {
            "first": cls.FIRST,
            "1": cls.FIRST,
            "第一学期": cls.FIRST,
            "second": cls.SECOND,
            "2": cls.SECOND,
            "第二学期": cls.SECOND,
        }
        try:
            return mapping[value.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown semester: {value!r}") from None

    @property
    def display_name(self) -> str:
        return {
            Semester.FIRST: "第一学期",
            Semester.SECOND: "第二学期",
        }[self]
