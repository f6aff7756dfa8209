"""Tests for mapping a parsed typewriter.toml onto playback options."""

from __future__ import annotations

import pytest

from typewriter.colors import Color
from typewriter.config import (
    OUTPUT_BUFFER,
    PlaybackOptions,
    options_from_config,
)
from typewriter.errors import ConfigError
from typewriter.timing import DurationConfig
from typewriter.tokens import StyleMarkers


class TestDefaults:
    def test_defaults(self) -> None:
        options = PlaybackOptions()
        assert options.char_delay == 100
        assert options.newline_delay == 200
        assert options.newpage_text == "New Page"
        assert options.markers == StyleMarkers()
        assert not options.instant

    def test_callbacks_are_noops(self) -> None:
        options = PlaybackOptions()
        options.on_finish()
        options.on_function()

    def test_durations(self) -> None:
        options = PlaybackOptions(char_delay=10, newline_delay=20, custom_delays={".": 300})
        assert options.durations == DurationConfig(10, 20, {".": 300})


class TestOptionsFromConfig:
    def test_empty_config(self) -> None:
        assert options_from_config({}) == {}

    def test_full_config(self) -> None:
        kwargs = options_from_config(
            {
                "playback": {
                    "char_delay": 40,
                    "newline_delay": 150.5,
                    "default_text_color": "#0f0",
                    "default_background_color": "#101010",
                    "newpage_text": "Continue",
                    "instant": True,
                    "output": "buffer",
                },
                "styles": {"bold": "#", "escape": "~"},
                "custom_delays": {".": 400, ",": 200},
            }
        )
        assert kwargs["char_delay"] == 40.0
        assert kwargs["newline_delay"] == 150.5
        assert kwargs["default_text_color"] == Color(0, 255, 0)
        assert kwargs["default_background_color"] == Color(16, 16, 16)
        assert kwargs["newpage_text"] == "Continue"
        assert kwargs["instant"] is True
        assert kwargs["output"] == OUTPUT_BUFFER
        assert kwargs["markers"] == StyleMarkers(bold="#", escape="~")
        assert kwargs["custom_delays"] == {".": 400.0, ",": 200.0}
        PlaybackOptions(**kwargs)

    def test_partial_config_only_returns_present_keys(self) -> None:
        assert options_from_config({"playback": {"char_delay": 5}}) == {"char_delay": 5.0}

    @pytest.mark.parametrize(
        "config, fragment",
        [
            ({"playback": {"char_delay": "fast"}}, "playback.char_delay"),
            ({"playback": {"newline_delay": True}}, "playback.newline_delay"),
            ({"playback": {"default_text_color": "red"}}, "playback.default_text_color"),
            ({"playback": {"output": "screen"}}, "playback.output"),
            ({"playback": 3}, "[playback]"),
            ({"styles": {"bold": "**"}}, "styles.bold"),
            ({"styles": []}, "[styles]"),
            ({"custom_delays": {"ab": 1}}, "custom_delays key"),
            ({"custom_delays": {"a": "slow"}}, "custom_delays.a"),
        ],
    )
    def test_invalid_values(self, config, fragment) -> None:
        with pytest.raises(ConfigError, match=fragment.replace("[", r"\[").replace("]", r"\]")):
            options_from_config(config)
