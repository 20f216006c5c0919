"""
Line and word diffs for reviewing staged changes.

generate_diff numbers each side independently so the result can be drawn
side by side or as a unified listing:

- unchanged lines carry both an old and a new line number
- removed lines carry only an old line number
- added lines carry only a new line number

Within a replaced block removed lines come before added ones.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum


_LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")
_WORD_PATTERN = re.compile(r"\s+|\w+|[^\w\s]")


class DiffLineType(Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffLine:
    """One line of a diff with its position on each side."""

    type: DiffLineType
    content: str
    old_line_number: int | None = None
    new_line_number: int | None = None


@dataclass(frozen=True)
class WordDiffSegment:
    """A run of text that was added, removed or kept."""

    type: DiffLineType
    content: str


@dataclass
class DiffStats:
    added: int = 0
    removed: int = 0
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)

    @classmethod
    def of(cls, lines: list[DiffLine]) -> DiffStats:
        stats = cls()
        for line in lines:
            if line.type is DiffLineType.ADDED:
                stats.added += 1
            elif line.type is DiffLineType.REMOVED:
                stats.removed += 1
            else:
                stats.unchanged += 1
        return stats


def _split_lines(text: str) -> list[str]:
    """
    Split into lines, keeping each terminator.

    A final newline does not start an extra empty line, and "x" differs
    from "x\\n" so a missing final newline shows up as a change.
    """
    return _LINE_PATTERN.findall(text)


def _strip_newline(line: str) -> str:
    return line[:-1] if line.endswith("\n") else line


def generate_diff(old_text: str | None = "", new_text: str | None = "") -> list[DiffLine]:
    """Diff two texts line by line."""
    old_lines = _split_lines(old_text or "")
    new_lines = _split_lines(new_text or "")

    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    result: list[DiffLine] = []
    old_no = 1
    new_no = 1

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for line in old_lines[i1:i2]:
                result.append(
                    DiffLine(DiffLineType.UNCHANGED, _strip_newline(line), old_no, new_no)
                )
                old_no += 1
                new_no += 1
            continue

        for line in old_lines[i1:i2]:
            result.append(
                DiffLine(DiffLineType.REMOVED, _strip_newline(line), old_line_number=old_no)
            )
            old_no += 1
        for line in new_lines[j1:j2]:
            result.append(
                DiffLine(DiffLineType.ADDED, _strip_newline(line), new_line_number=new_no)
            )
            new_no += 1

    return result


def generate_word_diff(old_text: str | None = "", new_text: str | None = "") -> list[WordDiffSegment]:
    """Diff two strings by words, keeping whitespace as its own tokens."""
    old_tokens = _WORD_PATTERN.findall(old_text or "")
    new_tokens = _WORD_PATTERN.findall(new_text or "")
    matcher = SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)

    segments: list[WordDiffSegment] = []

    def emit(kind: DiffLineType, tokens: list[str]) -> None:
        if not tokens:
            return
        text = "".join(tokens)
        if segments and segments[-1].type is kind:
            segments[-1] = WordDiffSegment(kind, segments[-1].content + text)
        else:
            segments.append(WordDiffSegment(kind, text))

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            emit(DiffLineType.UNCHANGED, old_tokens[i1:i2])
        else:
            emit(DiffLineType.REMOVED, old_tokens[i1:i2])
            emit(DiffLineType.ADDED, new_tokens[j1:j2])

    return segments
