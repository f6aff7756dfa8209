"""Playback options and their construction from a parsed TOML config."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from typewriter.colors import BLACK, WHITE, Color
from typewriter.errors import ConfigError
from typewriter.timing import DurationConfig
from typewriter.tokens import StyleMarkers, Token

OUTPUT_LIVE = "live"
OUTPUT_BUFFER = "buffer"


def _noop(*args: Any) -> None:
    pass


@dataclass(frozen=True, slots=True)
class PlaybackOptions:
    """Everything the playback engine and the analyzer can be configured with."""

    char_delay: float = 100.0
    newline_delay: float = 200.0
    markers: StyleMarkers = field(default_factory=StyleMarkers)
    custom_delays: Mapping[str, float] = field(default_factory=dict)
    default_text_color: Color = BLACK
    default_background_color: Color = WHITE
    newpage_text: str = "New Page"
    output: str = OUTPUT_LIVE
    instant: bool = False
    on_character: Callable[[Token], None] = _noop
    on_token: Callable[[Token], None] = _noop
    on_function: Callable[[], None] = _noop
    on_finish: Callable[[], None] = _noop

    @property
    def durations(self) -> DurationConfig:
        return DurationConfig(self.char_delay, self.newline_delay, dict(self.custom_delays))


# ---------------------------------------------------------------------------
# Config file mapping
# ---------------------------------------------------------------------------


def _number(table: Mapping[str, Any], key: str, where: str) -> float | None:
    value = table.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}.{key} must be a number, got {value!r}")
    return float(value)


def _color(table: Mapping[str, Any], key: str, where: str) -> Color | None:
    value = table.get(key)
    if value is None:
        return None
    try:
        return Color.from_hex(str(value))
    except ValueError:
        raise ConfigError(f"{where}.{key} must be #RGB or #RRGGBB, got {value!r}") from None


def _marker(table: Mapping[str, Any], key: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or len(value) != 1:
        raise ConfigError(f"styles.{key} must be a single character, got {value!r}")
    return value


def options_from_config(config: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a parsed typewriter.toml into PlaybackOptions keyword arguments.

    Only keys present in the file are returned, so callers can layer them
    over defaults and under CLI flags.
    """
    kwargs: dict[str, Any] = {}

    playback = config.get("playback", {})
    if not isinstance(playback, dict):
        raise ConfigError("[playback] must be a table")
    for key in ("char_delay", "newline_delay"):
        number = _number(playback, key, "playback")
        if number is not None:
            kwargs[key] = number
    for key in ("default_text_color", "default_background_color"):
        color = _color(playback, key, "playback")
        if color is not None:
            kwargs[key] = color
    if "newpage_text" in playback:
        kwargs["newpage_text"] = str(playback["newpage_text"])
    if "instant" in playback:
        kwargs["instant"] = bool(playback["instant"])
    if "output" in playback:
        output = playback["output"]
        if output not in (OUTPUT_LIVE, OUTPUT_BUFFER):
            raise ConfigError(
                f"playback.output must be {OUTPUT_LIVE!r} or {OUTPUT_BUFFER!r}, got {output!r}"
            )
        kwargs["output"] = output

    styles = config.get("styles", {})
    if not isinstance(styles, dict):
        raise ConfigError("[styles] must be a table")
    marker_kwargs: dict[str, str] = {}
    for key in ("italic", "bold", "underline", "strikethrough", "escape"):
        marker = _marker(styles, key)
        if marker is not None:
            marker_kwargs[key] = marker
    if marker_kwargs:
        kwargs["markers"] = StyleMarkers(**marker_kwargs)

    custom = config.get("custom_delays", {})
    if not isinstance(custom, dict):
        raise ConfigError("[custom_delays] must be a table")
    if custom:
        delays: dict[str, float] = {}
        for ch in custom:
            if len(ch) != 1:
                raise ConfigError(f"custom_delays key {ch!r} must be a single character")
            number = _number(custom, ch, "custom_delays")
            if number is not None:
                delays[ch] = number
        kwargs["custom_delays"] = delays

    return kwargs
