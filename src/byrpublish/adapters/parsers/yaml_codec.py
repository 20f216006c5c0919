"""
YAML Codec - canonical text form of metadata records.

The serialized form is what gets committed to the archive and what staged
changes store, so it must be byte-stable: the same record always yields the
same text. Conflict detection compares these strings directly.

Layout:

    # yaml-language-server: $schema=https://byrdocs.org/schema/book.yaml

    id: ...
    url: ...
    type: book
    data:
      title: ...

Empty optional fields are omitted rather than written as ``[]`` or ``""``.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from byrpublish.core.domain.entities import (
    BookData,
    DocData,
    MetadataRecord,
    TestData,
)
from byrpublish.core.domain.enums import RecordKind
from byrpublish.core.exceptions import ParserError, RecordShapeError


logger = logging.getLogger("YamlCodec")

SCHEMA_COMMENT_PREFIX = "# yaml-language-server: $schema="


class ArchiveDumper(yaml.SafeDumper):
    """
    SafeDumper tuned for archive files.

    Block sequences are indented under their key, and any scalar that needs
    quoting is double-quoted instead of PyYAML's default single quotes.
    """

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)

    def choose_scalar_style(self) -> str:
        style = super().choose_scalar_style()
        if style == "'":
            return '"'
        return style


def _non_blank(values: list[str]) -> list[str]:
    return [v for v in values if v and v.strip()]


def _book_data(data: BookData) -> dict[str, Any]:
    out: dict[str, Any] = {"title": data.title}

    authors = _non_blank(data.authors)
    if authors:
        out["authors"] = authors
    translators = _non_blank(data.translators)
    if translators:
        out["translators"] = translators
    if data.edition:
        out["edition"] = data.edition
    if data.publisher:
        out["publisher"] = data.publisher
    if data.publish_year:
        out["publish_year"] = data.publish_year
    isbn = _non_blank(data.isbn)
    if isbn:
        out["isbn"] = isbn

    out["filetype"] = data.filetype
    return out


def _test_data(data: TestData) -> dict[str, Any]:
    out: dict[str, Any] = {}

    college = _non_blank(data.college)
    if college:
        out["college"] = college

    course: dict[str, Any] = {"name": data.course.name}
    if data.course.type:
        course["type"] = data.course.type
    out["course"] = course

    if not data.time.is_empty():
        time: dict[str, Any] = {}
        if data.time.start:
            time["start"] = data.time.start
        if data.time.end:
            time["end"] = data.time.end
        if data.time.semester:
            time["semester"] = data.time.semester.value
        if data.time.stage:
            time["stage"] = data.time.stage
        out["time"] = time

    out["filetype"] = data.filetype
    out["content"] = list(data.content)
    return out


def _doc_data(data: DocData) -> dict[str, Any]:
    out: dict[str, Any] = {"title": data.title, "filetype": data.filetype}

    courses = []
    for course in data.course:
        if not course.name.strip():
            continue
        entry: dict[str, Any] = {}
        if course.type:
            entry["type"] = course.type
        entry["name"] = course.name
        courses.append(entry)
    if courses:
        out["course"] = courses

    out["content"] = list(data.content)
    return out


_DATA_BUILDERS = {
    RecordKind.BOOK: _book_data,
    RecordKind.TEST: _test_data,
    RecordKind.DOC: _doc_data,
}


def to_document(record: MetadataRecord) -> dict[str, Any]:
    """The mapping that gets dumped for ``record``."""
    return {
        "id": record.id,
        "url": record.url,
        "type": record.kind.value,
        "data": _DATA_BUILDERS[record.kind](record.payload),
    }


def serialize(kind: RecordKind, record: MetadataRecord) -> str:
    """
    Serialize a record to its canonical YAML text.

    Raises:
        RecordShapeError: If ``kind`` does not match the record.
    """
    if record.kind is not kind:
        raise RecordShapeError(
            f"Cannot serialize {record.kind.value} record {record.id} as {kind.value}"
        )

    body = yaml.dump(
        to_document(record),
        Dumper=ArchiveDumper,
        indent=2,
        width=float("inf"),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    return f"{SCHEMA_COMMENT_PREFIX}{kind.schema_url}\n\n{body}"


def serialize_record(record: MetadataRecord) -> str:
    """Serialize a record using its own kind."""
    return serialize(record.kind, record)


def parse_document(text: str) -> dict[str, Any]:
    """
    Load YAML text into its raw mapping.

    Raises:
        ParserError: If the text is not valid YAML or not a mapping.
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParserError("Invalid YAML", cause=e) from e

    if not isinstance(document, dict):
        raise ParserError("YAML document must be a mapping")
    return document


def parse(text: str) -> MetadataRecord:
    """
    Parse canonical (or hand-written) YAML back into a record.

    Raises:
        ParserError: If the text is malformed or the type is missing/unknown.
    """
    document = parse_document(text)
    try:
        record = MetadataRecord.from_dict(document)
    except RecordShapeError as e:
        raise ParserError(f"Invalid metadata record: {e.message}", cause=e) from e

    logger.debug(f"Parsed {record.kind.value} record {record.id}")
    return record
