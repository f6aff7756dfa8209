"""Test each tag handler in isolation."""

import pytest

from typewriter.colors import BLACK, WHITE, Color
from typewriter.errors import Severity
from typewriter.tags import (
    TAGS,
    DelayRule,
    EffectKind,
    RenderState,
    apply_tag,
    lookup,
)
from typewriter.tokens import Position, Span, Tag

_SPAN = Span(Position(1, 1, 0), Position(1, 1, 0))
RED = Color(255, 0, 0)


def tag(name: str, *args: str, closed: bool = True) -> Tag:
    raw = "[" + " ".join((name, *args)) + ("]" if closed else "")
    return Tag(name, args, raw, closed, _SPAN)


@pytest.fixture
def state() -> RenderState:
    return RenderState(BLACK, WHITE, BLACK, WHITE, char_delay=100.0)


class TestRegistry:
    def test_known_names(self):
        assert set(TAGS) == {
            "color",
            "background",
            "resetcolor",
            "resetbg",
            "invert",
            "newline",
            "linebreak",
            "tab",
            "hr",
            "newpage",
            "speed",
            "speeddefault",
            "sleep",
            "function",
        }

    def test_lookup_rejects_non_letters(self):
        assert lookup("speed2") is None
        assert lookup("") is None

    def test_signature(self):
        assert lookup("sleep").signature == "[sleep ms]"
        assert lookup("hr").signature == "[hr]"


class TestColors:
    def test_color_hex(self, state):
        new, effect = apply_tag(state, tag("color", "#ff0000"))
        assert new.foreground == RED
        assert effect.problems == ()

    def test_color_rgb(self, state):
        new, _ = apply_tag(state, tag("color", "255", "0", "0"))
        assert new.foreground == RED

    def test_background(self, state):
        new, _ = apply_tag(state, tag("background", "#f00"))
        assert new.background == RED
        assert new.foreground == BLACK

    def test_invalid_color_is_error_and_keeps_state(self, state):
        new, effect = apply_tag(state, tag("color", "red"))
        assert new == state
        assert effect.problems[0].severity == Severity.ERROR

    def test_missing_color(self, state):
        _, effect = apply_tag(state, tag("color"))
        assert effect.problems[0].severity == Severity.ERROR

    def test_reset(self, state):
        red, _ = apply_tag(state, tag("color", "#f00"))
        red, _ = apply_tag(red, tag("background", "#f00"))
        reset, _ = apply_tag(red, tag("resetcolor"))
        assert reset.foreground == BLACK
        assert reset.background == RED
        reset, _ = apply_tag(reset, tag("resetbg"))
        assert reset.background == WHITE

    def test_invert(self, state):
        new, _ = apply_tag(state, tag("invert"))
        assert new.foreground == WHITE
        assert new.background == BLACK


class TestLayout:
    def test_newline(self, state):
        _, effect = apply_tag(state, tag("newline"))
        assert effect.kind == EffectKind.LINE_BREAK
        assert effect.count == 1
        assert effect.delay == DelayRule.NEWLINE

    def test_linebreak_costs_one_newline(self, state):
        _, effect = apply_tag(state, tag("linebreak"))
        assert effect.count == 2
        assert effect.delay == DelayRule.NEWLINE

    def test_tab_default(self, state):
        _, effect = apply_tag(state, tag("tab"))
        assert effect.kind == EffectKind.SPACES
        assert effect.count == 4
        assert effect.problems == ()

    def test_tab_width(self, state):
        _, effect = apply_tag(state, tag("tab", "2"))
        assert effect.count == 2

    @pytest.mark.parametrize("arg", ["x", "0", "-3", "1.5"])
    def test_tab_invalid_width(self, state, arg):
        _, effect = apply_tag(state, tag("tab", arg))
        assert effect.count == 4
        assert effect.problems[0].severity == Severity.WARNING

    def test_hr(self, state):
        _, effect = apply_tag(state, tag("hr"))
        assert effect.kind == EffectKind.RULE
        assert effect.delay == DelayRule.CHAR

    def test_newpage(self, state):
        _, effect = apply_tag(state, tag("newpage"))
        assert effect.kind == EffectKind.PAGE_BREAK


class TestTiming:
    def test_speed(self, state):
        new, effect = apply_tag(state, tag("speed", "70"))
        assert new.speed_override == 70
        assert effect.problems == ()

    def test_speed_fallback(self, state):
        new, effect = apply_tag(state, tag("speed", "fast"))
        assert new.speed_override == 100
        assert "100 ms" in effect.problems[0].message

    def test_speed_without_char_delay(self, state):
        from dataclasses import replace

        new, effect = apply_tag(replace(state, char_delay=None), tag("speed"))
        assert new.speed_override is None
        assert effect.problems[0].severity == Severity.WARNING

    def test_speeddefault(self, state):
        fast, _ = apply_tag(state, tag("speed", "10"))
        normal, _ = apply_tag(fast, tag("speeddefault"))
        assert normal.speed_override is None

    def test_sleep(self, state):
        _, effect = apply_tag(state, tag("sleep", "250"))
        assert effect.delay == DelayRule.FIXED
        assert effect.delay_ms == 250

    def test_sleep_missing_argument(self, state):
        _, effect = apply_tag(state, tag("sleep"))
        assert effect.delay_ms == 1000
        assert effect.problems[0].severity == Severity.WARNING
        assert "1000 ms" in effect.problems[0].message

    def test_sleep_invalid_argument(self, state):
        _, effect = apply_tag(state, tag("sleep", "soon"))
        assert effect.delay_ms == 1000
        assert "Invalid numeric argument" in effect.problems[0].message

    def test_function(self, state):
        _, effect = apply_tag(state, tag("function"))
        assert effect.kind == EffectKind.FUNCTION


class TestUnknown:
    def test_literal_text_and_warning(self, state):
        new, effect = apply_tag(state, tag("foo", "bar"))
        assert new == state
        assert effect.kind == EffectKind.TEXT
        assert effect.text == "[foo bar]"
        assert effect.unknown
        assert effect.problems[0].severity == Severity.WARNING
        assert "Unknown tag: [foo]" in effect.problems[0].message

    def test_unclosed_unknown_is_silent(self, state):
        _, effect = apply_tag(state, tag("foo", closed=False))
        assert effect.unknown
        assert effect.problems == ()
        assert effect.text == "[foo"

    @pytest.mark.parametrize("name, raw", [("", "[]"), ("123", "[123]"), ("a1", "[a1 x]")])
    def test_non_letter_brackets_are_plain_text(self, state, name, raw):
        t = Tag(name, tuple(raw[1:-1].split()[1:]), raw, True, _SPAN)
        new, effect = apply_tag(state, t)
        assert new == state
        assert effect.kind == EffectKind.TEXT
        assert effect.text == raw
        assert not effect.unknown
        assert effect.problems == ()

    def test_extra_arguments_noted(self, state):
        _, effect = apply_tag(state, tag("newline", "3"))
        assert effect.kind == EffectKind.LINE_BREAK
        assert effect.problems[0].severity == Severity.INFORMATION
