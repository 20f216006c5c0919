"""
Tests for the line and word diff engine.
"""

from byrpublish.application.publish.diff import (
    DiffLine,
    DiffLineType,
    DiffStats,
    WordDiffSegment,
    generate_diff,
    generate_word_diff,
)


ADDED = DiffLineType.ADDED
REMOVED = DiffLineType.REMOVED
UNCHANGED = DiffLineType.UNCHANGED


# =============================================================================
# Line diff
# =============================================================================


class TestGenerateDiff:
    """Tests for generate_diff."""

    def test_identical(self):
        """Identical texts are all unchanged with matching numbers."""
        lines = generate_diff("a\nb\n", "a\nb\n")
        assert lines == [
            DiffLine(UNCHANGED, "a", 1, 1),
            DiffLine(UNCHANGED, "b", 2, 2),
        ]

    def test_replacement_removed_before_added(self):
        """A replaced line shows the removal first."""
        lines = generate_diff("a\nb\nc\n", "a\nB\nc\n")
        assert lines == [
            DiffLine(UNCHANGED, "a", 1, 1),
            DiffLine(REMOVED, "b", old_line_number=2),
            DiffLine(ADDED, "B", new_line_number=2),
            DiffLine(UNCHANGED, "c", 3, 3),
        ]

    def test_insertion_shifts_new_numbers(self):
        """Inserted lines advance only the new side."""
        lines = generate_diff("a\nc\n", "a\nb\nc\n")
        assert lines[1] == DiffLine(ADDED, "b", new_line_number=2)
        assert lines[2] == DiffLine(UNCHANGED, "c", 2, 3)

    def test_created_file(self):
        """Diffing from nothing adds every line."""
        lines = generate_diff(None, "x\ny\n")
        assert [line.type for line in lines] == [ADDED, ADDED]
        assert [line.new_line_number for line in lines] == [1, 2]
        assert all(line.old_line_number is None for line in lines)

    def test_deleted_file(self):
        """Diffing to nothing removes every line."""
        lines = generate_diff("x\ny\n", "")
        assert [line.old_line_number for line in lines] == [1, 2]
        assert all(line.type is REMOVED for line in lines)

    def test_empty(self):
        """Two empty texts produce no lines."""
        assert generate_diff("", "") == []

    def test_trailing_newline_is_a_change(self):
        """A missing final newline differs from a present one."""
        stats = DiffStats.of(generate_diff("x", "x\n"))
        assert stats.has_changes

    def test_final_newline_adds_no_empty_line(self):
        """A final newline does not produce a trailing empty line."""
        assert len(generate_diff("a\n", "a\n")) == 1

    def test_blank_lines_kept(self):
        """Blank lines in the middle are real lines."""
        lines = generate_diff("a\n\nb\n", "a\n\nb\n")
        assert [line.content for line in lines] == ["a", "", "b"]


class TestDiffStats:
    """Tests for DiffStats."""

    def test_counts(self):
        """Lines are counted per kind."""
        stats = DiffStats.of(generate_diff("a\nb\n", "a\nc\nd\n"))
        assert (stats.added, stats.removed, stats.unchanged) == (2, 1, 1)
        assert stats.has_changes

    def test_no_changes(self):
        assert not DiffStats.of(generate_diff("a\n", "a\n")).has_changes


# =============================================================================
# Word diff
# =============================================================================


class TestGenerateWordDiff:
    """Tests for generate_word_diff."""

    def test_replaced_word(self):
        """Only the changed word is marked."""
        segments = generate_word_diff("title: old name", "title: new name")
        assert segments == [
            WordDiffSegment(UNCHANGED, "title: "),
            WordDiffSegment(REMOVED, "old"),
            WordDiffSegment(ADDED, "new"),
            WordDiffSegment(UNCHANGED, " name"),
        ]

    def test_reassembles_both_sides(self):
        """Dropping one side's segments gives back the other text."""
        old, new = "a b, c", "a x, c d"
        segments = generate_word_diff(old, new)
        assert "".join(s.content for s in segments if s.type is not ADDED) == old
        assert "".join(s.content for s in segments if s.type is not REMOVED) == new

    def test_adjacent_runs_merge(self):
        """Consecutive segments of one kind are merged."""
        segments = generate_word_diff("", "one two")
        assert segments == [WordDiffSegment(ADDED, "one two")]

    def test_none_inputs(self):
        assert generate_word_diff(None, None) == []
