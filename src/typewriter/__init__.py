"""Typewriter markup: tokenizer, timed playback engine, and timing analyzer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typewriter.analysis import Analysis
    from typewriter.config import PlaybackOptions

__version__ = "0.1.0"


def render_html(source: str, options: PlaybackOptions | None = None) -> str:
    """Reveal source instantly into an HTML fragment."""
    from dataclasses import replace

    from typewriter.config import OUTPUT_BUFFER, PlaybackOptions
    from typewriter.playback import Typewriter

    options = replace(options or PlaybackOptions(), output=OUTPUT_BUFFER, instant=True)
    typewriter = Typewriter(source, options)
    typewriter.start()
    return typewriter.output or ""


def analyze(source: str, options: PlaybackOptions | None = None) -> Analysis:
    """Validate tags and compute colors and durations for a whole document."""
    from typewriter.analysis import analyze as _analyze

    return _analyze(source, options)
