"""Tick sources: periodic wake-ups that drive a CountdownTimer."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Callable, Protocol


class TickSource(Protocol):
    """A periodic wake-up primitive.

    ``schedule`` returns an opaque handle; ``cancel`` stops further firings
    for that handle and must tolerate a handle that is already cancelled.
    """

    def schedule(self, interval_ms: int, callback: Callable[[], Any]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class _PeriodicCall:
    """A self re-arming ``call_later`` chain."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], Any],
    ) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._timer: asyncio.TimerHandle = loop.call_later(interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm first so a callback that cancels leaves nothing scheduled.
        self._timer = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioTickSource:
    """Periodic ticks on an asyncio event loop.

    Must be used from the loop's own thread.  When *loop* is omitted the
    running loop is looked up on first ``schedule``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, interval_ms: int, callback: Callable[[], Any]) -> _PeriodicCall:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return _PeriodicCall(self._loop, interval_ms / 1000.0, callback)

    def cancel(self, handle: _PeriodicCall) -> None:
        handle.cancel()


class ManualTickSource:
    """A tick source advanced by hand.

    Every call to ``advance`` fires each live schedule once per tick,
    regardless of its interval.  Useful in tests and in hosts that already
    own a frame or event clock.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._callbacks: dict[int, Callable[[], Any]] = {}

    def schedule(self, interval_ms: int, callback: Callable[[], Any]) -> int:
        handle = next(self._ids)
        self._callbacks[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._callbacks.pop(handle, None)

    def advance(self, ticks: int = 1) -> None:
        """Fire every live schedule *ticks* times."""
        for _ in range(ticks):
            for handle, callback in list(self._callbacks.items()):
                # A callback earlier in this pass may have cancelled this one.
                if handle in self._callbacks:
                    callback()

    def pending(self) -> int:
        """Return the number of live schedules."""
        return len(self._callbacks)
