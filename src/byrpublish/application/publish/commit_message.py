"""
Commit and pull request text for a batch of staged changes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from byrpublish.adapters.parsers.yaml_codec import parse_document
from byrpublish.core.domain.entities import MetadataRecord, StagedChange
from byrpublish.core.domain.enums import ChangeStatus, RecordKind, Semester
from byrpublish.core.exceptions import ParserError


logger = logging.getLogger("CommitMessage")

SIGNATURE = "*使用 [BYR Docs Publish](https://publish.byrdocs.org) 发布*"

_ORDER = (ChangeStatus.CREATED, ChangeStatus.MODIFIED, ChangeStatus.DELETED)


@dataclass(frozen=True)
class CommitMessage:
    title: str
    body: str

    @property
    def message(self) -> str:
        """Full git commit message."""
        return f"{self.title}\n\n{self.body}"


def _test_name(data: dict[str, Any]) -> str:
    time = data.get("time") or {}
    course = data.get("course") or {}
    if not isinstance(time, dict):
        time = {}
    if not isinstance(course, dict):
        course = {}

    start = str(time.get("start") or "")
    end = str(time.get("end") or "")
    span = f"{start}-{end}" if start and end and start != end else start

    semester = ""
    raw_semester = time.get("semester")
    if raw_semester in (Semester.FIRST.value, Semester.SECOND.value):
        semester = " " + Semester(raw_semester).display_name

    stage = f" {time['stage']}" if time.get("stage") else ""
    content = data.get("content") or []
    label = "答案" if content == ["答案"] else "试卷"
    return f"{span}{semester} {course.get('name') or ''}{stage}{label}"


def _name_from_document(document: dict[str, Any]) -> str | None:
    kind = document.get("type")
    data = document.get("data")
    if not isinstance(data, dict):
        return None
    if kind in (RecordKind.BOOK.value, RecordKind.DOC.value):
        return str(data["title"]) if data.get("title") else None
    if kind == RecordKind.TEST.value:
        return _test_name(data)
    return None


def display_name(change: StagedChange) -> str:
    """
    Human readable name of the record a change touches.

    Books and docs use their title. Tests are named from their time span,
    semester, course, stage and whether only the answers are included.
    Deletions are named from the content the user saw before deleting.
    Anything unparsable falls back to the filename.
    """
    text = change.previous_content if change.status is ChangeStatus.DELETED else change.content
    if not text:
        return change.filename
    try:
        document = parse_document(text)
    except ParserError as e:
        logger.debug(f"Cannot name {change.filename}: {e}")
        return change.filename
    return _name_from_document(document) or change.filename


def display_info(record: MetadataRecord) -> tuple[str, str, str]:
    """(title, subtitle, type label) used when listing a record."""
    payload = record.payload
    if record.kind is RecordKind.BOOK:
        title = payload.title or record.id
        subtitle = ", ".join(a for a in payload.authors if a.strip())
    elif record.kind is RecordKind.TEST:
        time = payload.time
        title = _test_name(
            {
                "time": {
                    "start": time.start,
                    "end": time.end,
                    "semester": time.semester.value if time.semester else None,
                    "stage": time.stage,
                },
                "course": {"name": payload.course.name},
                "content": payload.content,
            }
        )
        subtitle = payload.course.name
    else:
        title = payload.title or record.id
        subtitle = ", ".join(c.name for c in payload.course)
    return title, subtitle, record.kind.type_label


def generate_commit_message(changes: Sequence[StagedChange]) -> CommitMessage:
    """
    Title and body shared by the commit and the pull request.

    A single change is described by name; several are counted per status,
    e.g. "创建了 2 个文件，删除了 1 个文件". The body lists every change
    grouped as created, modified, deleted and ends with a signature line.
    """
    grouped = {status: [c for c in changes if c.status is status] for status in _ORDER}

    if len(changes) == 1:
        only = changes[0]
        title = f"{only.status.verb}{display_name(only)}"
    else:
        title = "，".join(
            f"{status.verb} {len(grouped[status])} 个文件" for status in _ORDER if grouped[status]
        )

    lines = [f"- {status.verb} {display_name(c)}" for status in _ORDER for c in grouped[status]]
    lines.append("")
    lines.append(SIGNATURE)
    return CommitMessage(title=title, body="\n".join(lines))
