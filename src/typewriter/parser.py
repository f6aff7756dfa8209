"""Token-queue builder: lexer, tag assembler, and style resolver in sequence."""

from __future__ import annotations

from typewriter.assembler import assemble
from typewriter.lexer import tokenize
from typewriter.styles import resolve_styles
from typewriter.tokens import LineIndex, StyleMarkers, Token


def parse(source: str, markers: StyleMarkers | None = None) -> list[Token]:
    """Build the canonical token queue for source."""
    return resolve_styles(assemble(tokenize(source, markers)), markers)


def parse_lines(source: str, markers: StyleMarkers | None = None) -> list[list[Token]]:
    """Build the token queue and group it by the source line each token starts on.

    The result has one entry per source line, including empty ones.
    """
    lines: list[list[Token]] = [[] for _ in range(LineIndex(source).line_count)]
    for token in parse(source, markers):
        lines[token.span.start.line - 1].append(token)
    return lines
