"""Playback engine: reveals a token queue over time into a Sink."""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any

from typewriter.config import PlaybackOptions
from typewriter.errors import Severity
from typewriter.parser import parse
from typewriter.scheduler import AsyncioScheduler, Scheduler
from typewriter.sinks import MarkupSink, Sink, StyledRun, make_sink
from typewriter.tags import DISPLAY_EFFECT, DelayRule, Effect, EffectKind, RenderState, apply_tag
from typewriter.timing import token_delay
from typewriter.tokens import Display, Style, Tag, Token

logger = logging.getLogger(__name__)


class Mode(Enum):
    IDLE = auto()
    PLAYING = auto()
    PAUSED = auto()
    AWAITING_PAGE_ADVANCE = auto()
    FINISHED = auto()


class Typewriter:
    """Reveal typewriter markup token by token.

    Each processed token schedules the next step after its resolved delay,
    so at most one step is ever pending. ``pause`` cancels the pending step,
    ``resume`` continues from the same index, ``restart`` rewinds to zero.
    A ``[newpage]`` tag suspends playback until ``advance_page`` is called.
    With ``options.instant`` the whole queue is rendered synchronously.

    The default scheduler needs a running asyncio loop. Without one, timed
    control methods raise RuntimeError before touching any state.
    """

    def __init__(
        self,
        text: str,
        options: PlaybackOptions | None = None,
        *,
        sink: Sink | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._options = options or PlaybackOptions()
        self._queue: list[Token] = parse(text, self._options.markers)
        self._sink = sink if sink is not None else make_sink(self._options)
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._durations = self._options.durations
        self._state = self._initial_state()
        self._index = 0
        self._mode = Mode.IDLE
        self._pending: Any = None
        self._finish_notified = False
        self._speed_override: float | None = None

    def _initial_state(self) -> RenderState:
        return RenderState(
            foreground=self._options.default_text_color,
            background=self._options.default_background_color,
            default_foreground=self._options.default_text_color,
            default_background=self._options.default_background_color,
            char_delay=self._options.char_delay,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def queue(self) -> tuple[Token, ...]:
        return tuple(self._queue)

    @property
    def sink(self) -> Sink:
        return self._sink

    @property
    def output(self) -> str | None:
        """Markup accumulated so far, or None when writing to a live surface."""
        if isinstance(self._sink, MarkupSink):
            return self._sink.value
        return None

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def index(self) -> int:
        return self._index

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def progress(self) -> float:
        """Fraction of the queue processed so far."""
        if not self._queue:
            return 1.0
        return self._index / len(self._queue)

    @property
    def speed_override(self) -> float | None:
        return self._speed_override

    @speed_override.setter
    def speed_override(self, value: float | None) -> None:
        """Replace every delay except [sleep] until set back to None."""
        self._speed_override = value

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._options.instant:
            self._run_instant()
            return

        if self._mode in (Mode.PLAYING, Mode.AWAITING_PAGE_ADVANCE, Mode.FINISHED):
            return
        self._scheduler.ensure_ready()

        if self._index == 0:
            self._sink.clear()
            self._state = self._initial_state()

        self._cancel_pending()
        self._set_mode(Mode.PLAYING)
        self._step()

    def pause(self) -> None:
        if self._mode != Mode.PLAYING:
            return
        self._cancel_pending()
        self._set_mode(Mode.PAUSED)

    def resume(self) -> None:
        if self._mode not in (Mode.PAUSED, Mode.IDLE):
            return
        if self._index >= len(self._queue) and self._queue:
            return
        self.start()

    def toggle_pause(self) -> None:
        if self._mode == Mode.PLAYING:
            self.pause()
        elif self._mode in (Mode.PAUSED, Mode.IDLE):
            self.resume()

    def restart(self) -> None:
        if not self._options.instant:
            self._scheduler.ensure_ready()
        self._cancel_pending()
        self._index = 0
        self._finish_notified = False
        self._set_mode(Mode.IDLE)
        self.start()

    def advance_page(self) -> None:
        """Clear the surface and continue after a [newpage] tag."""
        if self._mode != Mode.AWAITING_PAGE_ADVANCE:
            return
        self._scheduler.ensure_ready()
        self._sink.clear()
        self._set_mode(Mode.PLAYING)
        self._step()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_mode(self, mode: Mode) -> None:
        if mode != self._mode:
            logger.debug("playback %s -> %s at token %d", self._mode.name, mode.name, self._index)
        self._mode = mode

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._scheduler.cancel(self._pending)
            self._pending = None

    def _finish(self) -> None:
        self._set_mode(Mode.FINISHED)
        if not self._finish_notified:
            self._finish_notified = True
            self._options.on_finish()

    def _run_instant(self) -> None:
        self._cancel_pending()
        self._sink.clear()
        self._state = self._initial_state()
        self._index = 0
        self._finish_notified = False
        self._set_mode(Mode.PLAYING)
        while self._index < len(self._queue):
            self._process(self._queue[self._index])
            self._index += 1
        self._finish()

    def _step(self) -> None:
        self._pending = None
        if self._mode != Mode.PLAYING:
            return
        if self._index >= len(self._queue):
            self._finish()
            return

        delay = self._process(self._queue[self._index])
        self._index += 1

        if self._mode == Mode.AWAITING_PAGE_ADVANCE:
            return
        if self._index >= len(self._queue):
            self._finish()
            return
        self._pending = self._scheduler.call_later(delay, self._step)

    def _process(self, token: Token) -> float:
        """Apply one token to the state and the sink; return the delay that follows it."""
        self._options.on_token(token)

        if isinstance(token, Display):
            effect = DISPLAY_EFFECT
            self._sink.write(self._run(token.char, token.styles))
            self._options.on_character(token)
        else:
            effect = self._apply(token)

        delay = token_delay(token, effect, self._state, self._durations)
        if self._speed_override is not None and effect.delay != DelayRule.FIXED:
            delay = self._speed_override
        return delay

    def _apply(self, tag: Tag) -> Effect:
        self._state, effect = apply_tag(self._state, tag)
        for problem in effect.problems:
            if problem.severity <= Severity.WARNING:
                logger.warning("%s (line %d)", problem.message, tag.span.start.line)

        if effect.kind == EffectKind.TEXT:
            self._sink.write(self._run(effect.text, Style.NONE))
        elif effect.kind == EffectKind.LINE_BREAK:
            self._sink.line_break(effect.count)
        elif effect.kind == EffectKind.SPACES:
            self._sink.spaces(effect.count)
        elif effect.kind == EffectKind.RULE:
            self._sink.rule()
        elif effect.kind == EffectKind.PAGE_BREAK:
            self._sink.page_break(self._options.newpage_text)
            if not self._options.instant:
                self._cancel_pending()
                self._set_mode(Mode.AWAITING_PAGE_ADVANCE)
        elif effect.kind == EffectKind.FUNCTION:
            # Instant reveal is not playback; hooks fire only while playing
            if self._mode == Mode.PLAYING and not self._options.instant:
                self._options.on_function()
        return effect

    def _run(self, text: str, styles: Style) -> StyledRun:
        return StyledRun(text, styles, self._state.foreground, self._state.background, self._index)
