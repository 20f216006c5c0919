"""
Domain Layer - record kinds, payloads, staged changes and identity.
"""

from .entities import (
    METADATA_DIR,
    PAYLOAD_TYPES,
    BookData,
    DocCourse,
    DocData,
    GitHubInstallation,
    MetadataRecord,
    Payload,
    ReconciledFile,
    RepositoryBinding,
    StagedChange,
    TestCourse,
    TestData,
    TestTime,
    User,
)
from .enums import (
    COURSE_TYPE_OPTIONS,
    DOC_CONTENT_OPTIONS,
    TEST_CONTENT_OPTIONS,
    TEST_STAGE_OPTIONS,
    ChangeStatus,
    ConflictType,
    RecordKind,
    Semester,
)


__all__ = [
    "COURSE_TYPE_OPTIONS",
    "DOC_CONTENT_OPTIONS",
    "METADATA_DIR",
    "PAYLOAD_TYPES",
    "TEST_CONTENT_OPTIONS",
    "TEST_STAGE_OPTIONS",
    "BookData",
    "ChangeStatus",
    "ConflictType",
    "DocCourse",
    "DocData",
    "GitHubInstallation",
    "MetadataRecord",
    "Payload",
    "ReconciledFile",
    "RecordKind",
    "RepositoryBinding",
    "Semester",
    "StagedChange",
    "TestCourse",
    "TestData",
    "TestTime",
    "User",
]
