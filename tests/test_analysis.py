"""Test whole-document analysis and the per-document store."""

import pytest

from typewriter.analysis import Analysis, DocumentStore, Duration, analyze, describe
from typewriter.colors import BLACK, WHITE, Color
from typewriter.config import PlaybackOptions
from typewriter.errors import Severity
from typewriter.tokens import Tag

RED = Color(255, 0, 0)
HEADER = '{{#timecalc char: 50 newline: 200 custom: { "a": 10 } #}}\n'


class TestDurations:
    def test_custom_character_delays(self, analyze_source):
        result = analyze_source(HEADER + "aab")
        assert result.diagnostics == ()
        assert result.durations == {(2, 1): 10, (2, 2): 10, (2, 3): 50}
        assert result.line_durations == (Duration(0), Duration(70))
        assert result.document_duration == Duration(70)

    def test_elapsed_is_cumulative(self, analyze_source):
        result = analyze_source(HEADER + "ab\nb")
        assert result.elapsed == {(2, 1): 0, (2, 2): 10, (3, 1): 60}
        assert result.document_duration == Duration(110)

    def test_sleep_without_argument(self, analyze_source):
        result = analyze_source(HEADER + "[sleep]")
        assert [d.severity for d in result.diagnostics] == [Severity.WARNING]
        assert "1000 ms" in result.diagnostics[0].message
        assert result.durations[(2, 1)] == 1000

    def test_speed_carries_across_lines(self, analyze_source):
        result = analyze_source(HEADER + "[speed 5]a\nb[speeddefault]\nb")
        assert result.durations[(2, 10)] == 5
        assert result.durations[(3, 1)] == 5
        assert result.durations[(4, 1)] == 50
        assert result.speed_overrides[(3, 1)] == 5
        assert result.speed_overrides[(4, 1)] is None

    def test_newline_tags(self, analyze_source):
        result = analyze_source(HEADER + "[newline][linebreak]")
        assert result.line_durations[1] == Duration(400)

    def test_without_directive_block(self, analyze_source):
        result = analyze_source("abc")
        assert result.config is None
        assert result.durations == {}
        assert result.line_durations == ()
        assert result.document_duration is None

    def test_unknown_tag_is_lower_bound(self, analyze_source):
        result = analyze_source(HEADER + "a[foo]\nb")
        assert result.line_durations[1].lower_bound
        assert not result.line_durations[2].lower_bound
        assert result.document_duration.lower_bound

    def test_newpage_is_lower_bound(self, analyze_source):
        result = analyze_source(HEADER + "[newpage]")
        assert result.document_duration.lower_bound

    def test_invalid_directive_reported(self, analyze_source):
        result = analyze_source("{{#timecalc char: 1 #}}\nabc")
        assert len(result.errors) == 1
        assert "newline" in result.errors[0].message
        assert result.document_duration is None


class TestDiagnostics:
    def test_unknown_tag_warning(self, analyze_source):
        result = analyze_source("x [foo]")
        (diagnostic,) = result.diagnostics
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.message == "Unknown tag: [foo]."
        assert (diagnostic.span.start.column, diagnostic.span.end.column) == (3, 8)

    def test_invalid_color_is_error(self, analyze_source):
        result = analyze_source("[color 300 0 0]")
        assert result.errors[0].severity == Severity.ERROR

    def test_sorted_by_position(self, analyze_source):
        result = analyze_source("[foo]\n{{#timecalc nope #}}\n[sleep x]")
        offsets = [d.span.start.offset for d in result.diagnostics]
        assert offsets == sorted(offsets)
        assert len(offsets) == 3

    def test_clean_document(self, analyze_source):
        assert analyze_source("plain */text*/ [hr]").diagnostics == ()

    def test_non_letter_brackets_are_silent(self, analyze_source):
        result = analyze_source(HEADER + "[] [123]")
        assert result.diagnostics == ()
        assert result.unknown_tags == frozenset()
        assert not result.document_duration.lower_bound


class TestColors:
    def test_arrays_cover_source(self, analyze_source):
        result = analyze_source("ab")
        assert len(result.foreground) == 3
        assert set(result.foreground) == {BLACK}
        assert set(result.background) == {WHITE}

    def test_color_applies_from_tag(self, analyze_source):
        result = analyze_source("x[color #f00]y")
        assert result.foreground[0] == BLACK
        assert result.foreground[1] == RED
        assert result.foreground[-1] == RED

    def test_color_forms_equivalent(self, analyze_source):
        a = analyze_source("[color 255 0 0]a")
        b = analyze_source("[color #ff0000]a")
        assert a.foreground[-2] == b.foreground[-2] == RED

    def test_reset_and_background(self, analyze_source):
        result = analyze_source("[background 0 0 255]a[resetbg]b")
        assert result.background[len("[background 0 0 255]")] == Color(0, 0, 255)
        assert result.background[-1] == WHITE

    def test_carries_across_lines(self, analyze_source):
        result = analyze_source("[color #f00]a\nb")
        assert result.info_at(2, 1).foreground == RED

    def test_custom_defaults(self, analyze_source):
        result = analyze_source("a", default_text_color=RED)
        assert result.foreground[0] == RED


class TestRoundTrip:
    def test_same_document_same_analysis(self):
        source = HEADER + "[color #0f0]a[foo]\n[sleep 20]b"
        assert analyze(source) == analyze(source)


class TestQueries:
    @pytest.fixture
    def result(self, analyze_source) -> Analysis:
        return analyze_source(HEADER + "*a*[hr] [nope]")

    def test_info_for_character(self, result):
        info = result.info_at(2, 2)
        assert info.token.char == "a"
        assert info.description == "character 'a' (bold)"
        assert info.speed_ms == 10
        assert info.elapsed_ms == 0

    def test_info_for_tag(self, result):
        info = result.info_at(2, 5)
        assert isinstance(info.token, Tag)
        assert info.description.startswith("[hr]:")

    def test_info_for_style_marker(self, result):
        info = result.info_at(2, 1)
        assert info.token is None
        assert info.description == "no token"

    def test_info_clamped(self, result):
        assert result.info_at(99, 99).foreground == BLACK

    def test_tag_info(self, result):
        hr, nope = [t for t in result.lines[1] if isinstance(t, Tag)]
        known = result.tag_info(hr.span)
        assert known.recognized
        assert known.definition.name == "hr"
        assert not result.tag_info(nope.span).recognized
        assert result.tag_info(hr).definition is known.definition

    def test_describe_unknown(self):
        assert "unknown tag [zap]" in describe(analyze("[zap]").lines[0][0])

    def test_describe_non_letter_brackets(self):
        assert describe(analyze("[12 x]").lines[0][0]) == "plain text [12 x]"


class TestDocumentStore:
    def test_lifecycle(self):
        store = DocumentStore()
        opened = store.open("file:///a.tw", "[foo]", 1)
        assert "file:///a.tw" in store
        assert len(opened.analysis.diagnostics) == 1

        changed = store.change("file:///a.tw", "fine", 2)
        assert store.get("file:///a.tw") is changed
        assert changed.version == 2
        assert changed.analysis.diagnostics == ()
        assert opened.analysis.diagnostics != ()

        store.close("file:///a.tw")
        assert "file:///a.tw" not in store
        assert store.get("file:///a.tw") is None
        assert len(store) == 0

    def test_close_unknown_is_harmless(self):
        store = DocumentStore()
        store.close("file:///missing.tw")
        assert len(store) == 0

    def test_documents_are_independent(self):
        store = DocumentStore(PlaybackOptions(default_text_color=RED))
        store.open("a", "x")
        store.open("b", "[foo]")
        assert store.get("a").analysis.diagnostics == ()
        assert store.get("a").analysis.foreground[0] == RED
        assert len(store) == 2
