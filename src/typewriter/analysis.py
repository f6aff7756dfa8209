"""Timing and analysis engine: whole-document diagnostics, colors, and durations.

``analyze`` never raises on malformed input: every problem becomes a
located Diagnostic and the pass carries on with whatever it could resolve.
Results are immutable; ``DocumentStore`` swaps in a fresh Analysis for a
document on every change.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Mapping
from dataclasses import dataclass, field

from typewriter.colors import Color
from typewriter.config import PlaybackOptions
from typewriter.directives import load_duration_config
from typewriter.errors import Diagnostic, Severity
from typewriter.parser import parse_lines
from typewriter.tags import (
    DISPLAY_EFFECT,
    EffectKind,
    RenderState,
    TagDef,
    apply_tag,
    lookup,
)
from typewriter.timing import DurationConfig, token_delay
from typewriter.tokens import STYLE_ORDER, Display, LineIndex, Span, Tag, Token, is_tag_name

logger = logging.getLogger(__name__)

SpeedKey = tuple[int, int]  # (line, column) of a token's first character


@dataclass(frozen=True, slots=True)
class Duration:
    """A reveal duration; ``lower_bound`` means some delay could not be known."""

    ms: float
    lower_bound: bool = False


@dataclass(frozen=True, slots=True)
class PositionInfo:
    """What the analyzer knows about one source position."""

    token: Token | None
    description: str
    speed_ms: float | None
    elapsed_ms: float | None
    foreground: Color
    background: Color


@dataclass(frozen=True, slots=True)
class TagInfo:
    recognized: bool
    definition: TagDef | None = None


def describe(token: Token | None) -> str:
    """Human-readable summary of a token for hover-style display."""
    if token is None:
        return "no token"
    if isinstance(token, Display):
        names = [s.name.lower() for s in STYLE_ORDER if s in token.styles]
        suffix = f" ({', '.join(names)})" if names else ""
        return f"character {token.char!r}{suffix}"
    definition = lookup(token.name)
    if definition is None and not is_tag_name(token.name):
        return f"plain text {token.raw}"
    if definition is None:
        return f"unknown tag [{token.name}], shown as literal text"
    return f"{definition.signature}: {definition.detail}"


@dataclass(frozen=True)
class Analysis:
    """Immutable result of analyzing one version of a document."""

    source: str
    config: DurationConfig | None
    lines: tuple[tuple[Token, ...], ...]
    diagnostics: tuple[Diagnostic, ...]
    line_durations: tuple[Duration, ...]
    document_duration: Duration | None
    foreground: tuple[Color, ...]
    background: tuple[Color, ...]
    speed_overrides: Mapping[SpeedKey, float | None]
    durations: Mapping[SpeedKey, float]
    elapsed: Mapping[SpeedKey, float]
    unknown_tags: frozenset[Span]
    index: LineIndex = field(repr=False, compare=False)
    _tokens: tuple[Token, ...] = field(default=(), repr=False, compare=False)
    _starts: tuple[int, ...] = field(default=(), repr=False, compare=False)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def token_at(self, offset: int) -> Token | None:
        """The token covering a character offset, if any."""
        idx = bisect_right(self._starts, offset) - 1
        if idx < 0:
            return None
        token = self._tokens[idx]
        return token if token.span.contains(offset) else None

    def info_at_offset(self, offset: int) -> PositionInfo:
        offset = max(0, min(offset, len(self.source)))
        token = self.token_at(offset)
        speed = elapsed = None
        if token is not None:
            key = (token.span.start.line, token.span.start.column)
            speed = self.durations.get(key)
            elapsed = self.elapsed.get(key)
        return PositionInfo(
            token,
            describe(token),
            speed,
            elapsed,
            self.foreground[offset],
            self.background[offset],
        )

    def info_at(self, line: int, column: int) -> PositionInfo:
        """Position info for a 1-based line and column."""
        return self.info_at_offset(self.index.offset(line, column))

    def tag_info(self, target: Span | Tag) -> TagInfo:
        """Whether the tag at a span (or the given tag) is recognized, and its definition."""
        span = target.span if isinstance(target, Tag) else target
        if span in self.unknown_tags:
            return TagInfo(False)
        token = self.token_at(span.start.offset)
        if not isinstance(token, Tag):
            return TagInfo(False)
        definition = lookup(token.name)
        return TagInfo(definition is not None, definition)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.ERROR)


def _color_arrays(
    length: int,
    default: tuple[Color, Color],
    changes: list[tuple[int, Color, Color]],
) -> tuple[tuple[Color, ...], tuple[Color, ...]]:
    """Expand (offset, fg, bg) change points into dense per-offset arrays."""
    fg = [default[0]] * (length + 1)
    bg = [default[1]] * (length + 1)
    for i, (start, new_fg, new_bg) in enumerate(changes):
        end = changes[i + 1][0] if i + 1 < len(changes) else length + 1
        fg[start:end] = [new_fg] * (end - start)
        bg[start:end] = [new_bg] * (end - start)
    return tuple(fg), tuple(bg)


def analyze(source: str, options: PlaybackOptions | None = None) -> Analysis:
    """Analyze a whole document: diagnostics, colors, and (with a timecalc block) durations."""
    options = options or PlaybackOptions()
    index = LineIndex(source)

    config, directive_errors = load_duration_config(source, index)
    diagnostics = [Diagnostic(Severity.ERROR, e.span, e.message) for e in directive_errors]

    lines = parse_lines(source, options.markers)
    state = RenderState(
        foreground=options.default_text_color,
        background=options.default_background_color,
        default_foreground=options.default_text_color,
        default_background=options.default_background_color,
        char_delay=config.char if config is not None else None,
    )

    changes: list[tuple[int, Color, Color]] = []
    unknown: set[Span] = set()
    overrides: dict[SpeedKey, float | None] = {}
    durations: dict[SpeedKey, float] = {}
    elapsed: dict[SpeedKey, float] = {}
    line_durations: list[Duration] = []
    clock = 0.0

    for line_tokens in lines:
        total = 0.0
        lower_bound = False
        for token in line_tokens:
            key = (token.span.start.line, token.span.start.column)
            if isinstance(token, Tag):
                before = (state.foreground, state.background)
                state, effect = apply_tag(state, token)
                for problem in effect.problems:
                    diagnostics.append(Diagnostic(problem.severity, token.span, problem.message))
                if effect.unknown:
                    unknown.add(token.span)
                if (state.foreground, state.background) != before:
                    changes.append((token.span.start.offset, state.foreground, state.background))
            else:
                effect = DISPLAY_EFFECT

            overrides[key] = state.speed_override
            if config is None:
                continue

            delay = token_delay(token, effect, state, config)
            elapsed[key] = clock
            durations[key] = delay
            clock += delay
            total += delay
            # A page break waits on the reader; an unknown tag has no documented cost
            if effect.unknown or effect.kind == EffectKind.PAGE_BREAK:
                lower_bound = True

        if config is not None:
            line_durations.append(Duration(total, lower_bound))

    document_duration = None
    if config is not None:
        document_duration = Duration(
            sum(d.ms for d in line_durations), any(d.lower_bound for d in line_durations)
        )

    fg, bg = _color_arrays(
        len(source), (options.default_text_color, options.default_background_color), changes
    )
    tokens = tuple(t for line_tokens in lines for t in line_tokens)
    diagnostics.sort(key=lambda d: d.span.start.offset)

    logger.debug(
        "analyzed %d lines, %d tokens, %d diagnostics", len(lines), len(tokens), len(diagnostics)
    )
    return Analysis(
        source=source,
        config=config,
        lines=tuple(tuple(line_tokens) for line_tokens in lines),
        diagnostics=tuple(diagnostics),
        line_durations=tuple(line_durations),
        document_duration=document_duration,
        foreground=fg,
        background=bg,
        speed_overrides=overrides,
        durations=durations,
        elapsed=elapsed,
        unknown_tags=frozenset(unknown),
        index=index,
        _tokens=tokens,
        _starts=tuple(t.span.start.offset for t in tokens),
    )


# ---------------------------------------------------------------------------
# Per-document contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentContext:
    """The latest analysis of one open document."""

    uri: str
    version: int | None
    analysis: Analysis


class DocumentStore:
    """Owns one DocumentContext per open document, replaced whole on every change."""

    def __init__(self, options: PlaybackOptions | None = None) -> None:
        self._options = options or PlaybackOptions()
        self._contexts: dict[str, DocumentContext] = {}

    def open(self, uri: str, text: str, version: int | None = None) -> DocumentContext:
        return self._replace(uri, text, version)

    def change(self, uri: str, text: str, version: int | None = None) -> DocumentContext:
        return self._replace(uri, text, version)

    def close(self, uri: str) -> None:
        if self._contexts.pop(uri, None) is not None:
            logger.debug("disposed analysis for %s", uri)

    def get(self, uri: str) -> DocumentContext | None:
        return self._contexts.get(uri)

    def __contains__(self, uri: object) -> bool:
        return uri in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    def _replace(self, uri: str, text: str, version: int | None) -> DocumentContext:
        context = DocumentContext(uri, version, analyze(text, self._options))
        self._contexts[uri] = context
        return context
