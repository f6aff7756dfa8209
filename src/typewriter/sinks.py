"""Render sinks: the surfaces a playback engine writes into.

The engine never looks at its output mode; it calls the same Sink methods
whether the text lands on a live terminal or in an HTML buffer.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Protocol, TextIO

from rich.console import Console
from rich.style import Style as RichStyle
from rich.text import Text

from typewriter.colors import Color
from typewriter.config import OUTPUT_BUFFER, PlaybackOptions
from typewriter.tokens import Style


@dataclass(frozen=True, slots=True)
class StyledRun:
    """A piece of content with its styles, colors, and queue index."""

    text: str
    styles: Style
    foreground: Color
    background: Color
    index: int


class Sink(Protocol):
    def write(self, run: StyledRun) -> None: ...

    def line_break(self, count: int = 1) -> None: ...

    def spaces(self, count: int) -> None: ...

    def rule(self) -> None: ...

    def page_break(self, label: str) -> None: ...

    def clear(self) -> None: ...


# ---------------------------------------------------------------------------
# HTML buffer
# ---------------------------------------------------------------------------


def _escape_html(text: str) -> str:
    """Escape text for HTML body content. Also encodes non-ASCII as entities."""
    result: list[str] = []
    for ch in text:
        if ch == "&":
            result.append("&amp;")
        elif ch == "<":
            result.append("&lt;")
        elif ch == ">":
            result.append("&gt;")
        elif ord(ch) > 0x7F:
            result.append(f"&#x{ord(ch):X};")
        else:
            result.append(ch)
    return "".join(result)


_HTML_WRAPPERS: tuple[tuple[Style, str], ...] = (
    (Style.ITALIC, "i"),
    (Style.BOLD, "b"),
    (Style.UNDERLINE, "u"),
    (Style.STRIKETHROUGH, "s"),
)


class MarkupSink:
    """Accumulate output as an HTML fragment."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    @property
    def value(self) -> str:
        return "".join(self._parts)

    def write(self, run: StyledRun) -> None:
        content = _escape_html(run.text)
        for style, element in _HTML_WRAPPERS:
            if style in run.styles:
                content = f"<{element}>{content}</{element}>"
        self._parts.append(
            f'<span data-index="{run.index}" style="color: {run.foreground.hex}; '
            f'background-color: {run.background.hex}">{content}</span>'
        )

    def line_break(self, count: int = 1) -> None:
        self._parts.append("<br>" * count)

    def spaces(self, count: int) -> None:
        self._parts.append("&nbsp;" * count)

    def rule(self) -> None:
        self._parts.append("<hr>")

    def page_break(self, label: str) -> None:
        self._parts.append(f'<hr><div class="typewriter-newpage">{_escape_html(label)}</div><hr>')

    def clear(self) -> None:
        self._parts.clear()


# ---------------------------------------------------------------------------
# Live terminal
# ---------------------------------------------------------------------------


class TerminalSink:
    """Write output to a terminal as it is revealed."""

    def __init__(self, console: Console | None = None, *, color: bool = True) -> None:
        self._console = console or Console(highlight=False)
        self._color = color

    @property
    def console(self) -> Console:
        return self._console

    def _style(self, run: StyledRun) -> RichStyle:
        return RichStyle(
            color=run.foreground.hex if self._color else None,
            bgcolor=run.background.hex if self._color else None,
            italic=Style.ITALIC in run.styles,
            bold=Style.BOLD in run.styles,
            underline=Style.UNDERLINE in run.styles,
            strike=Style.STRIKETHROUGH in run.styles,
        )

    def _emit(self, text: Text | str) -> None:
        self._console.print(text, end="", soft_wrap=True)
        self._console.file.flush()

    def write(self, run: StyledRun) -> None:
        self._emit(Text(run.text, style=self._style(run)))

    def line_break(self, count: int = 1) -> None:
        self._emit("\n" * count)

    def spaces(self, count: int) -> None:
        self._emit("\u00a0" * count)

    def rule(self) -> None:
        self._emit("\n")
        self._console.rule()

    def page_break(self, label: str) -> None:
        self._emit("\n")
        self._console.rule(Text(label))
        self._emit(Text("Press Enter to continue", style="dim"))

    def clear(self) -> None:
        self._console.clear()


def make_sink(options: PlaybackOptions, file: TextIO | None = None) -> MarkupSink | TerminalSink:
    """Pick the sink named by options.output."""
    if options.output == OUTPUT_BUFFER:
        return MarkupSink()
    return TerminalSink(Console(file=file or sys.stdout, highlight=False))
