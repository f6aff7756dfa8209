"""{{#timecalc ... #}} directive blocks: a small key: value grammar for durations.

A block body is a sequence of ``key: value`` pairs separated by newlines,
commas, or plain whitespace. Keys may be bare words or quoted strings, and
nested keys may also be bare digits. Values are numbers, quoted strings, or
one level of ``{ ... }`` nesting::

    {{#timecalc
        char: 50
        newline: 200
        custom: { "a": 10, ".": 400, }
    #}}
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from typewriter.errors import DirectiveError
from typewriter.lexer import COMMENT_CLOSE, COMMENT_OPEN, find_comments
from typewriter.timing import DurationConfig
from typewriter.tokens import LineIndex, Span

DIRECTIVE_NAME = "timecalc"

_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")
_PUNCT = ":{},"


@dataclass(frozen=True, slots=True)
class DirectiveBlock:
    """Location of one timecalc block: its whole span and its body offsets."""

    span: Span
    body_start: int
    body_end: int


@dataclass(frozen=True, slots=True)
class _Tok:
    kind: str  # "number", "string", "ident", or the punctuation character
    text: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class _Entry:
    value: float | str | dict[str, _Entry]
    key_span: Span
    value_span: Span


def find_directive_blocks(source: str, index: LineIndex | None = None) -> list[DirectiveBlock]:
    """Return every comment block whose body starts with the timecalc keyword."""
    index = index or LineIndex(source)
    blocks: list[DirectiveBlock] = []
    for start, end in find_comments(source):
        body_start = start + len(COMMENT_OPEN)
        body_end = end - len(COMMENT_CLOSE)
        inner = source[body_start:body_end]
        if not inner.startswith(DIRECTIVE_NAME):
            continue
        rest = inner[len(DIRECTIVE_NAME) :]
        if rest and not rest[0].isspace():
            continue
        span = Span(index.position(start), index.position(end))
        blocks.append(DirectiveBlock(span, body_start + len(DIRECTIVE_NAME), body_end))
    return blocks


class _DirectiveParser:
    """Parse one block body into validated durations."""

    def __init__(self, source: str, block: DirectiveBlock, index: LineIndex) -> None:
        self._source = source
        self._block = block
        self._index = index
        self._tokens = self._scan()
        self._pos = 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _span(self, start: int, end: int) -> Span:
        return Span(self._index.position(start), self._index.position(end))

    def _error(self, message: str, span: Span | None = None) -> DirectiveError:
        return DirectiveError(message, span or self._block.span, self._source)

    def _peek(self) -> _Tok | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _advance(self) -> _Tok:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan(self) -> list[_Tok]:
        src = self._source
        end = self._block.body_end
        i = self._block.body_start
        tokens: list[_Tok] = []

        while i < end:
            ch = src[i]
            if ch.isspace():
                i += 1
                continue

            if ch in _PUNCT:
                tokens.append(_Tok(ch, ch, i, i + 1))
                i += 1
                continue

            if ch in "\"'":
                j = i + 1
                chars: list[str] = []
                while j < end and src[j] != ch:
                    if src[j] == "\\" and j + 1 < end:
                        j += 1
                    chars.append(src[j])
                    j += 1
                if j >= end:
                    raise self._error("unterminated string in timecalc block", self._span(i, end))
                tokens.append(_Tok("string", "".join(chars), i, j + 1))
                i = j + 1
                continue

            m = _NUMBER_RE.match(src, i, end)
            if m:
                tokens.append(_Tok("number", m.group(), i, m.end()))
                i = m.end()
                continue

            m = _IDENT_RE.match(src, i, end)
            if m:
                tokens.append(_Tok("ident", m.group(), i, m.end()))
                i = m.end()
                continue

            raise self._error(
                f"unexpected character {ch!r} in timecalc block", self._span(i, i + 1)
            )

        return tokens

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def parse(self) -> DurationConfig:
        entries = self._parse_pairs(depth=0)
        return self._validate(entries)

    def _parse_pairs(self, depth: int, opener: _Tok | None = None) -> dict[str, _Entry]:
        entries: dict[str, _Entry] = {}
        while True:
            tok = self._peek()
            if tok is None:
                if opener is not None:
                    span = self._span(opener.start, opener.end)
                    raise self._error("unclosed '{' in timecalc block", span)
                return entries

            if tok.kind == "}":
                if opener is None:
                    span = self._span(tok.start, tok.end)
                    raise self._error("unexpected '}' in timecalc block", span)
                self._advance()
                return entries

            if tok.kind == ",":
                # Separators, including trailing ones, are optional
                self._advance()
                continue

            # Inside a nested block a bare digit names a character
            key_kinds = ("ident", "string", "number") if depth else ("ident", "string")
            if tok.kind not in key_kinds:
                span = self._span(tok.start, tok.end)
                raise self._error(f"expected a key, found {tok.text!r}", span)
            key = self._advance()
            key_span = self._span(key.start, key.end)

            colon = self._peek()
            if colon is None or colon.kind != ":":
                raise self._error(f"expected ':' after key '{key.text}'", key_span)
            self._advance()

            entries[key.text] = self._parse_value(key, key_span, depth)

    def _parse_value(self, key: _Tok, key_span: Span, depth: int) -> _Entry:
        tok = self._peek()
        if tok is None or tok.kind in (",", "}", ":"):
            raise self._error(f"missing value for key '{key.text}'", key_span)

        self._advance()
        value_span = self._span(tok.start, tok.end)

        if tok.kind == "number":
            return _Entry(float(tok.text), key_span, value_span)

        if tok.kind == "string":
            return _Entry(tok.text, key_span, value_span)

        if tok.kind == "{":
            if depth >= 1:
                raise self._error("timecalc blocks allow only one level of nesting", value_span)
            nested = self._parse_pairs(depth + 1, opener=tok)
            closing = self._tokens[self._pos - 1]
            return _Entry(nested, key_span, self._span(tok.start, closing.end))

        raise self._error(
            f"unquoted value '{tok.text}' for key '{key.text}'; quote string values",
            value_span,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _required_number(self, entries: dict[str, _Entry], name: str) -> float:
        entry = entries.get(name)
        if entry is None:
            raise self._error(f"timecalc block is missing required field '{name}'")
        if not isinstance(entry.value, float):
            raise self._error(f"'{name}' must be a number", entry.value_span)
        return entry.value

    def _validate(self, entries: dict[str, _Entry]) -> DurationConfig:
        char = self._required_number(entries, "char")
        newline = self._required_number(entries, "newline")

        custom: dict[str, float] = {}
        entry = entries.get("custom")
        if entry is not None:
            if not isinstance(entry.value, dict):
                raise self._error(
                    "'custom' must be an object of character: delay pairs", entry.value_span
                )
            for ch, item in entry.value.items():
                if len(ch) != 1:
                    message = f"custom key '{ch}' must be a single character"
                    raise self._error(message, item.key_span)
                if not isinstance(item.value, float):
                    raise self._error(f"custom delay for '{ch}' must be a number", item.value_span)
                custom[ch] = item.value

        return DurationConfig(char, newline, custom)


def parse_directive(
    source: str, block: DirectiveBlock, index: LineIndex | None = None
) -> DurationConfig:
    """Parse and validate one block. Raises DirectiveError on the first problem."""
    return _DirectiveParser(source, block, index or LineIndex(source)).parse()


def load_duration_config(
    source: str, index: LineIndex | None = None
) -> tuple[DurationConfig | None, list[DirectiveError]]:
    """Parse every timecalc block in document order.

    Each valid block replaces the active configuration; an invalid block is
    reported and leaves the previous configuration (or none) in place.
    """
    index = index or LineIndex(source)
    config: DurationConfig | None = None
    errors: list[DirectiveError] = []
    for block in find_directive_blocks(source, index):
        try:
            config = parse_directive(source, block, index)
        except DirectiveError as exc:
            errors.append(exc)
    return config, errors
