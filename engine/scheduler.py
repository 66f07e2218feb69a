"""Cancellable delayed callbacks used to pace the enemy's turn."""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """A scheduler driven by hand: nothing runs until advance() is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._handles if not handle.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward and run every callback now due.

        Returns:
            The number of callbacks run.
        """
        self.now += seconds
        due = [h for h in self._handles if h.due <= self.now and not h.cancelled]
        self._handles = [h for h in self._handles if h not in due and not h.cancelled]
        for handle in sorted(due, key=lambda h: h.due):
            handle.callback()
        return len(due)


class ImmediateScheduler:
    """Runs callbacks inline, ignoring the delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(0.0, callback)
        callback()
        return handle


def make_scheduler(delay: float) -> Scheduler:
    """AsyncioScheduler for real pacing, ImmediateScheduler when delay is zero."""
    if delay <= 0:
        return ImmediateScheduler()
    return AsyncioScheduler()
