"""Error and diagnostic types with formatted source context."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from typewriter.tokens import Span


class Severity(IntEnum):
    # Values match the LSP DiagnosticSeverity numbering
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4

    @property
    def label(self) -> str:
        return {1: "error", 2: "warning", 3: "info", 4: "hint"}[self.value]


def format_context(
    label: str, message: str, span: Span, source: str, filename: str = "input.tw"
) -> str:
    """Render a message with a gutter, the offending source line, and carets."""
    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline the full span when on one line, otherwise to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"{label}: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class DirectiveError(Exception):
    """Raised on the first error in a {{#timecalc}} block, with span and source context."""

    def __init__(self, message: str, span: Span, source: str) -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.tw") -> str:
        return format_context("error", self.message, self.span, self.source, filename)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or holds invalid values."""


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A located analysis finding, reported to the host instead of raised."""

    severity: Severity
    span: Span
    message: str
    source: str = "typewriter"

    def format(self, text: str, filename: str = "input.tw") -> str:
        return format_context(self.severity.label, self.message, self.span, text, filename)
