"""Tag registry: documentation and pure effect handlers per tag name."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum, auto

from typewriter.colors import Color, parse_color
from typewriter.errors import Severity
from typewriter.tokens import Tag, is_tag_name

DEFAULT_SLEEP_MS = 1000.0
DEFAULT_TAB_WIDTH = 4

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


class EffectKind(Enum):
    NONE = auto()  # state change only
    TEXT = auto()  # emit text (display character or literal tag)
    LINE_BREAK = auto()
    SPACES = auto()
    RULE = auto()
    PAGE_BREAK = auto()
    FUNCTION = auto()


class DelayRule(Enum):
    CHAR = auto()  # character delay, replaced by an active speed override
    NEWLINE = auto()  # newline delay, replaced by an active speed override
    FIXED = auto()  # Effect.delay_ms is authoritative


@dataclass(frozen=True, slots=True)
class TagProblem:
    """A finding about a tag's arguments; playback falls back and continues."""

    severity: Severity
    message: str


@dataclass(frozen=True, slots=True)
class Effect:
    """What a token does to the render surface and how long it takes."""

    kind: EffectKind = EffectKind.NONE
    count: int = 0
    text: str = ""
    delay: DelayRule = DelayRule.CHAR
    delay_ms: float | None = None
    unknown: bool = False
    problems: tuple[TagProblem, ...] = ()


DISPLAY_EFFECT = Effect(EffectKind.TEXT)


@dataclass(frozen=True, slots=True)
class RenderState:
    """Visual and timing state carried from token to token."""

    foreground: Color
    background: Color
    default_foreground: Color
    default_background: Color
    char_delay: float | None
    speed_override: float | None = None


Handler = Callable[[RenderState, tuple[str, ...]], tuple[RenderState, Effect]]


@dataclass(frozen=True, slots=True)
class TagDef:
    """Definition of a recognized tag."""

    name: str
    handler: Handler
    detail: str
    signature: str
    takes_args: bool


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _positive_number(text: str) -> float | None:
    if not _NUMBER_RE.fullmatch(text):
        return None
    value = float(text)
    return value if value > 0 else None


def _number_arg(
    name: str, args: tuple[str, ...], fallback: str
) -> tuple[float | None, tuple[TagProblem, ...]]:
    """Read the first argument as a positive number, reporting the fallback if it isn't."""
    if not args:
        message = f"Tag [{name}] usually takes a numeric argument. Will default to {fallback}."
        return None, (TagProblem(Severity.WARNING, message),)
    value = _positive_number(args[0])
    if value is None:
        message = (
            f"Invalid numeric argument in tag [{name} {' '.join(args)}]. "
            f"Will default to {fallback}."
        )
        return None, (TagProblem(Severity.WARNING, message),)
    return value, ()


def _format_ms(value: float) -> str:
    return f"{value:g} ms"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _color_handler(attr: str, name: str) -> Handler:
    def handle(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
        color = parse_color(args)
        if color is None:
            if args:
                message = f"Invalid color literal in tag [{name} {' '.join(args)}]."
            else:
                message = f"Tag [{name}] needs a color: #RGB, #RRGGBB, or three integers 0-255."
            return state, Effect(problems=(TagProblem(Severity.ERROR, message),))
        return replace(state, **{attr: color}), Effect()

    return handle


def _reset_color(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return replace(state, foreground=state.default_foreground), Effect()


def _reset_bg(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return replace(state, background=state.default_background), Effect()


def _invert(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return replace(state, foreground=state.background, background=state.foreground), Effect()


def _newline(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return state, Effect(EffectKind.LINE_BREAK, count=1, delay=DelayRule.NEWLINE)


def _linebreak(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    # Two breaks for the price of one newline
    return state, Effect(EffectKind.LINE_BREAK, count=2, delay=DelayRule.NEWLINE)


def _tab(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    width = DEFAULT_TAB_WIDTH
    problems: tuple[TagProblem, ...] = ()
    if args:
        if args[0].isascii() and args[0].isdigit() and int(args[0]) > 0:
            width = int(args[0])
        else:
            message = (
                f"Invalid numeric argument in tag [tab {' '.join(args)}]. "
                f"Will default to {DEFAULT_TAB_WIDTH} spaces."
            )
            problems = (TagProblem(Severity.WARNING, message),)
    return state, Effect(EffectKind.SPACES, count=width, problems=problems)


def _hr(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return state, Effect(EffectKind.RULE)


def _newpage(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return state, Effect(EffectKind.PAGE_BREAK)


def _speed(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    fallback = "the character delay"
    if state.char_delay is not None:
        fallback = _format_ms(state.char_delay)
    value, problems = _number_arg("speed", args, fallback)
    if value is None:
        value = state.char_delay
    return replace(state, speed_override=value), Effect(problems=problems)


def _speed_default(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return replace(state, speed_override=None), Effect()


def _sleep(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    value, problems = _number_arg("sleep", args, _format_ms(DEFAULT_SLEEP_MS))
    if value is None:
        value = DEFAULT_SLEEP_MS
    return state, Effect(delay=DelayRule.FIXED, delay_ms=value, problems=problems)


def _function(state: RenderState, args: tuple[str, ...]) -> tuple[RenderState, Effect]:
    return state, Effect(EffectKind.FUNCTION)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _make_tags() -> dict[str, TagDef]:
    defs: dict[str, TagDef] = {}

    def d(name: str, handler: Handler, detail: str, signature: str = "") -> None:
        defs[name] = TagDef(name, handler, detail, signature or f"[{name}]", bool(signature))

    # Colors
    d(
        "color",
        _color_handler("foreground", "color"),
        "Sets the text color until the next color tag",
        "[color #RRGGBB | #RGB | R G B]",
    )
    d(
        "background",
        _color_handler("background", "background"),
        "Sets the background color until the next background tag",
        "[background #RRGGBB | #RGB | R G B]",
    )
    d("resetcolor", _reset_color, "Restores the default text color")
    d("resetbg", _reset_bg, "Restores the default background color")
    d("invert", _invert, "Swaps the current text and background colors")

    # Layout
    d("newline", _newline, "Inserts a new line")
    d(
        "linebreak",
        _linebreak,
        "Inserts a line break, which is just 2 newlines. But has the same speed as one newline",
    )
    d("tab", _tab, "Inserts N non-breaking spaces, 4 if no width is given", "[tab N]")
    d("hr", _hr, "Inserts a horizontal rule")
    d("newpage", _newpage, "Starts a new page")

    # Timing
    d(
        "speed",
        _speed,
        "Overrides the current character speed to a number. "
        "Defaults to the character speed if argument is NaN",
        "[speed ms]",
    )
    d("speeddefault", _speed_default, "Removes the override of the [speed] tag")
    d(
        "sleep",
        _sleep,
        "Pauses typewriter for amount in ms. Defaults to 1000 if argument is NaN",
        "[sleep ms]",
    )

    # Hooks
    d("function", _function, "Runs a specified function")

    return defs


TAGS: dict[str, TagDef] = _make_tags()


def lookup(name: str) -> TagDef | None:
    """Return the definition for a tag name, or None if it is not recognized."""
    if not is_tag_name(name):
        return None
    return TAGS.get(name)


def apply_tag(state: RenderState, tag: Tag) -> tuple[RenderState, Effect]:
    """Run a tag's handler; unknown tags become literal text."""
    definition = lookup(tag.name)
    if definition is None:
        # Brackets around anything but a letters-only name are plain text
        named = is_tag_name(tag.name)
        problems: tuple[TagProblem, ...] = ()
        # An unterminated tag is recovered silently
        if tag.closed and named:
            problems = (TagProblem(Severity.WARNING, f"Unknown tag: [{tag.name}]."),)
        return state, Effect(EffectKind.TEXT, text=tag.raw, unknown=named, problems=problems)

    new_state, effect = definition.handler(state, tag.args)
    if tag.args and not definition.takes_args:
        extra = TagProblem(
            Severity.INFORMATION,
            f"Tag [{tag.name}] takes no arguments; extra arguments are ignored.",
        )
        effect = replace(effect, problems=(*effect.problems, extra))
    return new_state, effect
