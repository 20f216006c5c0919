"""
Field validators for metadata records.

Every function here is pure: no I/O, no exceptions for invalid input.
Validators that depend on the calendar take an optional ``today`` so callers
and tests can pin the date.

Two year checks exist and intentionally disagree on their upper bound:

- validate_year (single-year fields such as a book's publish year) allows
  up to the current calendar year.
- validate_year_range (a test paper's academic year) allows up to the
  current academic year, which rolls over in August.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

import isbnlib

from byrpublish.core.domain.entities import (
    BookData,
    DocData,
    MetadataRecord,
    Payload,
    TestData,
)
from byrpublish.core.domain.enums import RecordKind


FILES_URL_PREFIX = "https://byrdocs.org/files/"
MIN_ACADEMIC_YEAR = 2000
ACADEMIC_YEAR_ROLLOVER_MONTH = 8

_FILE_URL_PATTERN = re.compile(r"^https://byrdocs\.org/files/([a-f0-9]{32})\.([a-zA-Z0-9]+)$", re.I)
_MD5_PATTERN = re.compile(r"^[a-f0-9]+$", re.I)
_DIGITS_PATTERN = re.compile(r"^\d+$")
_ISBN_CHARS_PATTERN = re.compile(r"^[0-9Xx\- ]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validator that reports why it failed."""

    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(True)

    @classmethod
    def fail(cls, error: str) -> ValidationResult:
        return cls(False, error)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class FieldError:
    """A failed check tied to the form field it should highlight."""

    field_id: str
    message: str


# =============================================================================
# ISBN
# =============================================================================


def validate_isbn(isbn: str) -> bool:
    """True iff ``isbn`` is a checksum-valid ISBN-10 or ISBN-13."""
    if not isbn or not _ISBN_CHARS_PATTERN.match(isbn.strip()):
        return False
    return bool(isbnlib.is_isbn10(isbn) or isbnlib.is_isbn13(isbn))


def format_isbn(isbn: str) -> str:
    """
    Return the hyphenated ISBN-13 form of a valid ISBN.

    Invalid input is returned unchanged. If the registration group is not
    in the range table the unhyphenated ISBN-13 is returned.
    """
    if not validate_isbn(isbn):
        return isbn
    isbn13 = isbnlib.to_isbn13(isbnlib.canonical(isbn))
    if not isbn13:
        return isbn
    return isbnlib.mask(isbn13) or isbn13


# =============================================================================
# Years
# =============================================================================


def current_academic_year(today: date | None = None) -> int:
    """The calendar year, plus one from August onwards."""
    today = today or date.today()
    if today.month >= ACADEMIC_YEAR_ROLLOVER_MONTH:
        return today.year + 1
    return today.year


def validate_year(year: str, today: date | None = None) -> bool:
    """
    Validate an optional single-year field.

    Empty means "not given" and passes. Otherwise the value must be a
    positive integer no later than the current calendar year.
    """
    if not year:
        return True
    if not _DIGITS_PATTERN.match(year.strip()):
        return False
    value = int(year.strip())
    current_year = (today or date.today()).year
    return 0 < value <= current_year


def validate_year_range(
    start: str | None, end: str | None, today: date | None = None
) -> ValidationResult:
    """Validate the academic-year pair of a test paper."""
    start = start or ""
    end = end or ""

    if not start and not end:
        return ValidationResult.ok()
    if start and not end:
        return ValidationResult.fail("填写了开始年份后，结束年份也必须填写")
    if end and not start:
        return ValidationResult.fail("填写了结束年份后，开始年份也必须填写")

    if not _DIGITS_PATTERN.match(start.strip()):
        return ValidationResult.fail("开始年份必须是整数")
    if not _DIGITS_PATTERN.match(end.strip()):
        return ValidationResult.fail("结束年份必须是整数")

    start_year = int(start.strip())
    end_year = int(end.strip())
    upper = current_academic_year(today)

    if not MIN_ACADEMIC_YEAR <= start_year <= upper:
        return ValidationResult.fail(f"开始年份必须在 {MIN_ACADEMIC_YEAR} 到 {upper} 之间")
    if not MIN_ACADEMIC_YEAR <= end_year <= upper:
        return ValidationResult.fail(f"结束年份必须在 {MIN_ACADEMIC_YEAR} 到 {upper} 之间")
    if end_year not in (start_year, start_year + 1):
        return ValidationResult.fail("结束年份必须等于开始年份或开始年份+1")

    return ValidationResult.ok()


# =============================================================================
# URLs
# =============================================================================


def clean_url(url: str) -> str:
    """Strip any query string and fragment."""
    return url.split("#", 1)[0].split("?", 1)[0]


def validate_url_format(url: str) -> ValidationResult:
    """Check that ``url`` has the shape https://byrdocs.org/files/<md5>.<ext>."""
    if not url.strip():
        return ValidationResult.ok()

    if not url.startswith(FILES_URL_PREFIX):
        return ValidationResult.fail(f"URL必须以 {FILES_URL_PREFIX} 开头")

    cleaned = clean_url(url)
    file_part = cleaned[len(FILES_URL_PREFIX):]

    md5_part, dot, extension = file_part.rpartition(".")
    if not dot:
        return ValidationResult.fail(
            f"URL中缺少文件扩展名，格式应为：{FILES_URL_PREFIX}[MD5].[扩展名]"
        )
    if not md5_part:
        return ValidationResult.fail("URL中缺少 MD5 哈希值")
    if len(md5_part) != 32:
        return ValidationResult.fail(
            f"MD5 哈希值长度不正确，应为 32 位，当前为 {len(md5_part)} 位"
        )
    if not _MD5_PATTERN.match(md5_part):
        return ValidationResult.fail("MD5 哈希值格式不正确，只能包含 0-9 和 a-f 字符")
    if not extension:
        return ValidationResult.fail("URL 中缺少文件扩展名")

    if cleaned != url or not _FILE_URL_PATTERN.match(cleaned):
        return ValidationResult.fail("URL格式不正确，不能包含额外的路径或参数")

    return ValidationResult.ok()


def validate_url(url: str, kind: RecordKind) -> ValidationResult:
    """Check the URL shape and that its extension is allowed for ``kind``."""
    if not url.strip():
        return ValidationResult.ok()

    result = validate_url_format(url)
    if not result:
        return result

    match = _FILE_URL_PATTERN.match(url)
    if not match:
        return ValidationResult.fail("无法从URL中检测到文件扩展名")

    extension = match.group(2).lower()
    if extension not in kind.allowed_extensions:
        return ValidationResult.fail(
            f"{kind.display_name}类型只支持 {kind.allowed_formats_label} 格式，"
            f"检测到的格式为 {extension.upper()}"
        )
    return ValidationResult.ok()


def extract_md5_from_url(url: str) -> str:
    """The MD5 segment of a well-formed file URL, or an empty string."""
    match = _FILE_URL_PATTERN.match(url)
    return match.group(1) if match else ""


def extract_filetype_from_url(url: str, kind: RecordKind) -> str:
    """
    The filetype to record for ``url``.

    Only docs may be something other than PDF; everything else is "pdf".
    """
    match = _FILE_URL_PATTERN.match(url)
    if match and kind is RecordKind.DOC:
        return match.group(2).lower() or "pdf"
    return "pdf"


# =============================================================================
# Form steps
# =============================================================================


def _non_blank(values: Iterable[str]) -> list[str]:
    return [v for v in values if v and v.strip()]


def validate_location(record_id: str, url: str, kind: RecordKind) -> list[FieldError]:
    """Validate the file step: id and URL present, URL valid for the kind."""
    errors: list[FieldError] = []
    if not record_id.strip():
        errors.append(FieldError("file-id", "文件 MD5 不能为空"))
    if not url.strip():
        errors.append(FieldError("file-url", "文件 URL 不能为空"))
        return errors

    result = validate_url(url, kind)
    if not result:
        errors.append(FieldError("file-url", result.error or "URL 无效"))
    elif record_id and extract_md5_from_url(url).lower() != record_id.lower():
        errors.append(FieldError("file-url", "URL 中的 MD5 与文件 MD5 不一致"))
    return errors


def _validate_book(data: BookData, today: date | None) -> list[FieldError]:
    errors: list[FieldError] = []
    if not data.title.strip():
        errors.append(FieldError("book-title", "书名不能为空"))
    if not _non_blank(data.authors):
        errors.append(FieldError("book-authors", "至少需要一位作者"))

    isbns = _non_blank(data.isbn)
    if not isbns:
        errors.append(FieldError("book-isbn", "至少需要一个 ISBN"))
    else:
        invalid = [i for i in isbns if not validate_isbn(i)]
        if invalid:
            errors.append(FieldError("book-isbn", f"ISBN 无效：{', '.join(invalid)}"))

    if not validate_year(data.publish_year or "", today):
        errors.append(FieldError("book-publish-year", "出版年份无效"))
    return errors


def _validate_test(data: TestData, today: date | None) -> list[FieldError]:
    errors: list[FieldError] = []
    if not data.course.name.strip():
        errors.append(FieldError("test-course-name", "课程名称不能为空"))
    if not data.content:
        errors.append(FieldError("test-content", "至少选择一种内容类型"))
    result = validate_year_range(data.time.start, data.time.end, today)
    if not result:
        errors.append(FieldError("test-time-range", result.error or "年份范围无效"))
    return errors


def _validate_doc(data: DocData, today: date | None) -> list[FieldError]:
    errors: list[FieldError] = []
    if not data.title.strip():
        errors.append(FieldError("doc-title", "资料标题不能为空"))
    if not data.course or any(not c.name.strip() for c in data.course):
        errors.append(FieldError("doc-course", "每门课程都必须填写名称"))
    if not data.content:
        errors.append(FieldError("doc-content", "至少选择一种内容类型"))
    return errors


_PAYLOAD_VALIDATORS = {
    RecordKind.BOOK: _validate_book,
    RecordKind.TEST: _validate_test,
    RecordKind.DOC: _validate_doc,
}


def validate_payload(kind: RecordKind, payload: Payload, today: date | None = None) -> list[FieldError]:
    """Validate the metadata step for one payload."""
    return _PAYLOAD_VALIDATORS[kind](payload, today)


def validate_record(record: MetadataRecord, today: date | None = None) -> list[FieldError]:
    """Run every form step against a complete record."""
    errors = validate_location(record.id, record.url, record.kind)
    errors.extend(validate_payload(record.kind, record.payload, today))
    return errors


def highlighted_fields(errors: Iterable[FieldError]) -> list[str]:
    """Field ids to highlight, in first-seen order without duplicates."""
    seen: dict[str, None] = {}
    for error in errors:
        seen.setdefault(error.field_id, None)
    return list(seen)
