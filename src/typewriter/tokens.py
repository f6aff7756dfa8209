"""Token types, source positions, and style-marker configuration."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum, Flag, auto


class PrimitiveKind(Enum):
    CHAR = auto()  # display character (possibly escaped)
    STYLE = auto()  # style-toggle marker outside a tag
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    TAG_TEXT = auto()  # any character between [ and ]
    NEWLINE = auto()  # \n or \r\n


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based character offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position

    def contains(self, offset: int) -> bool:
        return self.start.offset <= offset < self.end.offset


@dataclass(frozen=True, slots=True)
class Primitive:
    """A single lexer token before tag assembly and style resolution."""

    kind: PrimitiveKind
    value: str
    span: Span
    escaped: bool = False


class Style(Flag):
    NONE = 0
    ITALIC = auto()
    BOLD = auto()
    UNDERLINE = auto()
    STRIKETHROUGH = auto()


# Innermost to outermost wrapping order
STYLE_ORDER: tuple[Style, ...] = (Style.ITALIC, Style.BOLD, Style.UNDERLINE, Style.STRIKETHROUGH)


@dataclass(frozen=True, slots=True)
class StyleMarkers:
    """Characters that toggle inline styles, plus the escape character."""

    italic: str = "/"
    bold: str = "*"
    underline: str = "_"
    strikethrough: str = "-"
    escape: str = "\\"

    def style_for(self, ch: str) -> Style | None:
        """Return the style toggled by ch, or None if ch is not a marker."""
        if ch == self.italic:
            return Style.ITALIC
        if ch == self.bold:
            return Style.BOLD
        if ch == self.underline:
            return Style.UNDERLINE
        if ch == self.strikethrough:
            return Style.STRIKETHROUGH
        return None


@dataclass(frozen=True, slots=True)
class Display:
    """A visible character with the style set active where it appears."""

    char: str
    styles: Style
    span: Span


@dataclass(frozen=True, slots=True)
class Tag:
    """A bracketed directive: [name arg ...]."""

    name: str
    args: tuple[str, ...]
    raw: str
    closed: bool
    span: Span


Token = Display | Tag


class LineIndex:
    """Map between character offsets and 1-based line/column positions."""

    def __init__(self, source: str) -> None:
        self._length = len(source)
        self._starts = [0]
        for i, ch in enumerate(source):
            if ch == "\n":
                self._starts.append(i + 1)

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def position(self, offset: int) -> Position:
        offset = max(0, min(offset, self._length))
        idx = bisect_right(self._starts, offset) - 1
        return Position(idx + 1, offset - self._starts[idx] + 1, offset)

    def offset(self, line: int, column: int) -> int:
        """Offset of a 1-based line/column, clamped to the source."""
        if line < 1:
            return 0
        if line > len(self._starts):
            return self._length
        return min(self._starts[line - 1] + max(column, 1) - 1, self._length)


def is_hex_digit(ch: str) -> bool:
    """Return True if ch is a hexadecimal digit."""
    return ch in "0123456789abcdefABCDEF"


def is_tag_name(name: str) -> bool:
    """Return True if name is a well-formed tag name (ASCII letters only)."""
    return name.isascii() and name.isalpha()
