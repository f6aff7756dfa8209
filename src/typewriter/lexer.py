"""Typewriter lexer: converts source text into a flat primitive stream."""

from __future__ import annotations

from typewriter.tokens import Position, Primitive, PrimitiveKind, Span, StyleMarkers

COMMENT_OPEN = "{{#"
COMMENT_CLOSE = "#}}"


def find_comments(source: str) -> list[tuple[int, int]]:
    """Return (start, end) offsets of every {{# ... #}} block, shortest match.

    An opener without a matching closer is not a comment and stays in the text.
    """
    spans: list[tuple[int, int]] = []
    pos = 0
    while True:
        start = source.find(COMMENT_OPEN, pos)
        if start < 0:
            break
        close = source.find(COMMENT_CLOSE, start + len(COMMENT_OPEN))
        if close < 0:
            break
        end = close + len(COMMENT_CLOSE)
        spans.append((start, end))
        pos = end
    return spans


class Lexer:
    """Tokenize typewriter source into Primitive objects.

    Never raises: unterminated tags and dangling escapes are left for the
    assembler to recover from.
    """

    def __init__(self, source: str, markers: StyleMarkers | None = None) -> None:
        self._source = source
        self._markers = markers or StyleMarkers()
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: list[Primitive] = []
        self._in_tag = False
        self._comments = {start: end for start, end in find_comments(source)}

    def tokenize(self) -> list[Primitive]:
        """Tokenize the full source and return the primitive list."""
        while self._pos < len(self._source):
            if self._skip_comment():
                continue
            self._lex_one()
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _emit(
        self, kind: PrimitiveKind, value: str, start: Position, *, escaped: bool = False
    ) -> None:
        self._tokens.append(Primitive(kind, value, Span(start, self._current_pos()), escaped))

    def _skip_comment(self) -> bool:
        end = self._comments.get(self._pos)
        if end is None:
            return False
        while self._pos < end:
            self._advance()
        return True

    def _at_newline(self) -> bool:
        ch = self._peek()
        return ch == "\n" or (ch == "\r" and self._peek(1) == "\n")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _lex_one(self) -> None:
        start = self._current_pos()
        ch = self._peek()

        if self._at_newline():
            self._advance()
            if ch == "\r":
                self._advance()
            # A tag never spans lines
            self._in_tag = False
            self._emit(PrimitiveKind.NEWLINE, "\n", start)
            return

        if ch == self._markers.escape:
            self._lex_escape(start)
            return

        if self._in_tag:
            self._advance()
            if ch == "]":
                self._in_tag = False
                self._emit(PrimitiveKind.RBRACKET, ch, start)
            else:
                self._emit(PrimitiveKind.TAG_TEXT, ch, start)
            return

        if ch == "[":
            self._advance()
            self._in_tag = True
            self._emit(PrimitiveKind.LBRACKET, ch, start)
            return

        self._advance()
        if self._markers.style_for(ch) is not None:
            self._emit(PrimitiveKind.STYLE, ch, start)
        else:
            self._emit(PrimitiveKind.CHAR, ch, start)

    def _lex_escape(self, start: Position) -> None:
        self._advance()  # consume escape character
        # Comments are removed before escapes apply
        while self._skip_comment():
            pass

        # Dangling escape at end of input or before a line break is dropped
        if self._pos >= len(self._source) or self._at_newline():
            return

        ch = self._advance()
        kind = PrimitiveKind.TAG_TEXT if self._in_tag else PrimitiveKind.CHAR
        self._emit(kind, ch, start, escaped=True)


def tokenize(source: str, markers: StyleMarkers | None = None) -> list[Primitive]:
    """Convenience function: tokenize source text and return the primitive list."""
    return Lexer(source, markers).tokenize()
