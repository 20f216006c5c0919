"""
Output - console formatting for the byrpublish CLI.
"""

from __future__ import annotations

import sys

from byrpublish.application.publish import (
    DiffLine,
    DiffLineType,
    DiffStats,
    PublishResult,
    PublishStep,
    WordDiffSegment,
)
from byrpublish.core.domain.entities import ReconciledFile
from byrpublish.core.domain.enums import ChangeStatus
from byrpublish.core.validation import FieldError


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


class Symbols:
    """Unicode symbols for terminal output."""

    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    DOT = "•"
    WARN = "⚠"
    INFO = "ℹ"

    BOX_H = "─"


class DiffFormatter:
    """Renders diffs as text for the terminal."""

    SIGNS = {
        DiffLineType.ADDED: "+",
        DiffLineType.REMOVED: "-",
        DiffLineType.UNCHANGED: " ",
    }

    def __init__(self, color: bool = True):
        self.color = color

    def _paint(self, kind: DiffLineType, text: str) -> str:
        if not self.color or kind is DiffLineType.UNCHANGED:
            return text
        code = Colors.GREEN if kind is DiffLineType.ADDED else Colors.RED
        return f"{code}{text}{Colors.RESET}"

    def format_line(self, line: DiffLine) -> str:
        old = str(line.old_line_number) if line.old_line_number is not None else ""
        new = str(line.new_line_number) if line.new_line_number is not None else ""
        gutter = f"{old:>4} {new:>4} "
        if self.color:
            gutter = f"{Colors.DIM}{gutter}{Colors.RESET}"
        return gutter + self._paint(line.type, f"{self.SIGNS[line.type]} {line.content}")

    def format_diff(self, lines: list[DiffLine]) -> str:
        if not lines:
            return "(empty)"
        stats = DiffStats.of(lines)
        body = "\n".join(self.format_line(line) for line in lines)
        return f"{body}\n\n+{stats.added} -{stats.removed}"

    def format_word_diff(self, segments: list[WordDiffSegment]) -> str:
        parts = []
        for segment in segments:
            if self.color:
                parts.append(self._paint(segment.type, segment.content))
            elif segment.type is DiffLineType.ADDED:
                parts.append(f"{{+{segment.content}+}}")
            elif segment.type is DiffLineType.REMOVED:
                parts.append(f"[-{segment.content}-]")
            else:
                parts.append(segment.content)
        return "".join(parts)


STATUS_COLORS = {
    ChangeStatus.CREATED: Colors.GREEN,
    ChangeStatus.MODIFIED: Colors.YELLOW,
    ChangeStatus.DELETED: Colors.RED,
    ChangeStatus.UNCHANGED: Colors.DIM,
}


class Console:
    """
    Console output helper with colors and formatting.

    Attributes:
        color: Whether to use ANSI color codes.
        verbose: Whether to print debug messages.
        quiet: Whether to suppress everything but errors and results.
    """

    def __init__(self, color: bool = True, verbose: bool = False, quiet: bool = False):
        self.color = color and sys.stdout.isatty()
        self.verbose = verbose and not quiet
        self.quiet = quiet

    def _c(self, text: str, *codes: str) -> str:
        if not self.color:
            return text
        return "".join(codes) + text + Colors.RESET

    def print(self, text: str = "", force: bool = False) -> None:
        if self.quiet and not force:
            return
        print(text)

    def header(self, text: str) -> None:
        if self.quiet:
            return
        width = max(len(text) + 4, 50)
        border = self._c(Symbols.BOX_H * width, Colors.CYAN) if self.color else "-" * width
        self.print()
        self.print(border)
        self.print(self._c(f"  {text}", Colors.BOLD, Colors.CYAN))
        self.print(border)
        self.print()

    def section(self, text: str) -> None:
        if self.quiet:
            return
        self.print()
        self.print(self._c(f"{Symbols.ARROW} {text}", Colors.BOLD, Colors.BLUE))

    def success(self, text: str) -> None:
        self.print(self._c(f"  {Symbols.CHECK} {text}", Colors.GREEN))

    def error(self, text: str) -> None:
        """Errors always print, even in quiet mode."""
        print(self._c(f"  {Symbols.CROSS} {text}", Colors.RED), file=sys.stderr)

    def warning(self, text: str) -> None:
        self.print(self._c(f"  {Symbols.WARN} {text}", Colors.YELLOW))

    def info(self, text: str) -> None:
        self.print(self._c(f"  {Symbols.INFO} {text}", Colors.CYAN))

    def detail(self, text: str) -> None:
        self.print(self._c(f"    {text}", Colors.DIM))

    def debug(self, text: str) -> None:
        if self.verbose:
            self.print(self._c(f"  [DEBUG] {text}", Colors.DIM))

    def item(self, text: str, status: str | None = None) -> None:
        status_str = ""
        if status == "ok":
            status_str = self._c(f" [{Symbols.CHECK}]", Colors.GREEN)
        elif status == "fail":
            status_str = self._c(f" [{Symbols.CROSS}]", Colors.RED)
        elif status:
            status_str = self._c(f" [{status}]", Colors.DIM)
        self.print(f"    {Symbols.DOT} {text}{status_str}")

    def table(self, headers: list[str], rows: list[list[str]]) -> None:
        if self.quiet:
            return
        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        self.print("  " + "  ".join(self._c(h.ljust(widths[i]), Colors.BOLD) for i, h in enumerate(headers)))
        self.print("  " + "  ".join("-" * w for w in widths))
        for row in rows:
            self.print("  " + "  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(row)))

    def config_errors(self, errors: list[str]) -> None:
        self.error("Configuration errors:")
        for error in errors:
            print(f"    {Symbols.DOT} {error}", file=sys.stderr)

    # -------------------------------------------------------------------------
    # Domain output
    # -------------------------------------------------------------------------

    def status_badge(self, file: ReconciledFile) -> str:
        badge = f"{file.status.symbol} {file.status.value}"
        text = self._c(badge, STATUS_COLORS[file.status])
        if file.has_conflict and file.conflict_type:
            text += " " + self._c(f"[{file.conflict_type.description}]", Colors.BOLD, Colors.RED)
        return text

    def reconciled_files(self, files: list[ReconciledFile], show_unchanged: bool = False) -> None:
        """List files with their status, flagging conflicts."""
        shown = [f for f in files if show_unchanged or f.status is not ChangeStatus.UNCHANGED]
        if not shown:
            self.info("No staged changes")
            return
        for file in shown:
            self.print(f"  {self.status_badge(file)}  {file.filename}", force=True)

        conflicts = sum(1 for f in shown if f.has_conflict)
        if conflicts:
            self.print()
            self.warning(f"{conflicts} file(s) conflict with the archive")

    def field_errors(self, errors: list[FieldError]) -> None:
        for error in errors:
            self.error(f"{error.field_id}: {error.message}")

    def diff(self, lines: list[DiffLine]) -> None:
        self.print(DiffFormatter(color=self.color).format_diff(lines), force=True)

    def publish_progress(self, phase: str, current: int, total: int) -> None:
        self.print(self._c(f"  [{current}/{total}] {phase}", Colors.CYAN))

    def publish_result(self, result: PublishResult) -> None:
        self.print()
        for step in PublishStep:
            if step in result.completed_steps:
                self.item(step.description, "ok")
            elif step is result.failed_step:
                self.item(step.description, "fail")

        self.print()
        if result.success:
            self.success(f"Pull request opened: {result.pr_url}")
            return
        self.error(result.error or "Publish failed")
        if result.binding_required:
            self.info("Run 'byrpublish bind' to choose a repository first")
        elif result.branch:
            self.detail(f"Branch {result.branch} was left on your fork")

    def confirm(self, message: str) -> bool:
        prompt = self._c(f"\n{Symbols.WARN} {message} (y/N): ", Colors.YELLOW)
        try:
            return input(prompt).strip().lower() in ("y", "yes")
        except (EOFError, KeyboardInterrupt):
            self.print()
            return False
