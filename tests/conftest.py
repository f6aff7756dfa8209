"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from typewriter.analysis import Analysis, analyze
from typewriter.config import OUTPUT_BUFFER, PlaybackOptions
from typewriter.lexer import tokenize
from typewriter.parser import parse
from typewriter.playback import Typewriter
from typewriter.scheduler import VirtualScheduler
from typewriter.sinks import MarkupSink
from typewriter.tokens import Display, Primitive, Tag, Token


@pytest.fixture
def lex():
    """Return a helper that tokenizes source into primitives."""

    def _lex(source: str) -> list[Primitive]:
        return tokenize(source)

    return _lex


@pytest.fixture
def queue():
    """Return a helper that builds the full token queue."""

    def _queue(source: str) -> list[Token]:
        return parse(source)

    return _queue


@pytest.fixture
def analyze_source():
    """Return a helper that analyzes source with default options."""

    def _analyze(source: str, **kwargs) -> Analysis:
        return analyze(source, PlaybackOptions(**kwargs))

    return _analyze


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def make_typewriter(scheduler):
    """Return a factory for typewriters wired to a virtual clock and an HTML buffer."""

    def _make(text: str, **kwargs) -> Typewriter:
        kwargs.setdefault("output", OUTPUT_BUFFER)
        options = PlaybackOptions(**kwargs)
        return Typewriter(text, options, sink=MarkupSink(), scheduler=scheduler)

    return _make


def display_text(tokens: list[Token]) -> str:
    """Concatenate the characters of all Display tokens."""
    return "".join(t.char for t in tokens if isinstance(t, Display))


def tags(tokens: list[Token]) -> list[Tag]:
    """Return all Tag tokens."""
    return [t for t in tokens if isinstance(t, Tag)]
