"""Cancellable schedule-after abstractions for the playback engine."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Any, Protocol


class Scheduler(Protocol):
    """Run a callback once after a delay, unless it is cancelled first."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...

    def ensure_ready(self) -> None:
        """Raise if callbacks cannot be scheduled from the current context."""
        ...


class _Timer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False


class VirtualScheduler:
    """Scheduler driven by an explicit clock; nothing runs until advance() is called."""

    def __init__(self) -> None:
        self.now_ms = 0.0
        self._heap: list[tuple[float, int, _Timer]] = []
        self._seq = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now_ms + max(0.0, delay_ms), callback)
        heapq.heappush(self._heap, (timer.due, next(self._seq), timer))
        return timer

    def cancel(self, handle: _Timer) -> None:
        handle.cancelled = True

    def ensure_ready(self) -> None:
        pass

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def next_due(self) -> float | None:
        """Time of the earliest live timer, or None when idle."""
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        if not self._heap:
            return None
        return self._heap[0][0]

    def advance(self, delay_ms: float) -> None:
        """Move the clock forward, firing every timer that falls due on the way."""
        target = self.now_ms + delay_ms
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            _, _, timer = heapq.heappop(self._heap)
            self.now_ms = timer.due
            timer.callback()
        self.now_ms = target

    def run_until_idle(self, limit: int = 1_000_000) -> float:
        """Fire timers until none remain. Returns the elapsed virtual time."""
        start = self.now_ms
        for _ in range(limit):
            due = self.next_due()
            if due is None:
                break
            self.advance(due - self.now_ms)
        return self.now_ms - start


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def ensure_ready(self) -> None:
        self._event_loop()

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        # Raises RuntimeError outside a running loop unless one was given
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._event_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
