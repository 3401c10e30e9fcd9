"""Timer core: a tick-driven countdown state machine."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from tickdown.core.ticks import TickSource

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 1000


class TimerState(Enum):
    """Possible states of the timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    EXPIRED = "expired"


class InvalidDuration(ValueError):
    """Raised by ``start()`` when the duration is not a positive number of seconds."""


def _noop_tick(remaining: int) -> None:
    pass


def _noop_end() -> None:
    pass


class CountdownTimer:
    """A countdown timer that decrements once per fired tick.

    The timer never reads the clock: it counts wake-ups delivered by its
    *tick_source*.  Every schedule is tagged with a generation number, and
    pausing, stopping or restarting bumps the generation, so a firing that
    the source delivers after cancellation is ignored.

    All calls must come from the thread or task that owns the timer.
    """

    def __init__(self, tick_source: TickSource, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._tick_source = tick_source
        self._interval_ms = interval_ms
        self._state: TimerState = TimerState.IDLE
        self._duration: int = 0
        self._remaining: int = 0
        self._on_tick: Callable[[int], Any] = _noop_tick
        self._on_end: Callable[[], Any] = _noop_end
        self._handle: Any = None
        self._generation: int = 0

    # -- public interface ----------------------------------------------------

    def start(
        self,
        duration: int,
        on_tick: Callable[[int], Any] | None = None,
        on_end: Callable[[], Any] | None = None,
    ) -> None:
        """Start counting down *duration* seconds.

        Valid from any state; an active cycle is discarded and replaced.
        Raises ``InvalidDuration`` without touching the timer when
        *duration* is not positive.
        """
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise TypeError(f"duration must be an integer, got {type(duration).__name__}")
        if duration <= 0:
            raise InvalidDuration(f"duration must be a positive number of seconds, got {duration}")

        if self._state in (TimerState.RUNNING, TimerState.PAUSED):
            logger.debug("Restarting countdown from %s state", self._state.value)
        self._disarm()
        self._duration = duration
        self._remaining = duration
        self._on_tick = on_tick if on_tick is not None else _noop_tick
        self._on_end = on_end if on_end is not None else _noop_end
        self._state = TimerState.RUNNING
        self._arm()
        logger.debug("Countdown started: %d seconds", duration)

    def pause(self) -> None:
        """Freeze the countdown.  No-op unless RUNNING."""
        if self._state is not TimerState.RUNNING:
            return
        self._disarm()
        self._state = TimerState.PAUSED
        logger.debug("Countdown paused at %d seconds", self._remaining)

    def resume(self) -> None:
        """Continue a paused countdown one full interval from now.

        No-op unless PAUSED with time remaining.
        """
        if self._state is not TimerState.PAUSED or self._remaining <= 0:
            return
        self._state = TimerState.RUNNING
        self._arm()
        logger.debug("Countdown resumed at %d seconds", self._remaining)

    def stop(self) -> None:
        """Cancel any countdown and return to IDLE.  Safe to call repeatedly."""
        self._disarm()
        if self._state is not TimerState.IDLE:
            logger.debug("Countdown stopped from %s state", self._state.value)
        self._state = TimerState.IDLE
        self._remaining = 0
        self._on_tick = _noop_tick
        self._on_end = _noop_end

    def get_state(self) -> TimerState:
        """Return the current timer state."""
        return self._state

    def get_remaining(self) -> int:
        """Return the seconds left in the current cycle."""
        return self._remaining

    def get_duration(self) -> int:
        """Return the duration passed to the last ``start()``."""
        return self._duration

    # -- private helpers -----------------------------------------------------

    def _arm(self) -> None:
        """Schedule periodic ticks tagged with a fresh generation."""
        self._generation += 1
        generation = self._generation
        self._handle = self._tick_source.schedule(
            self._interval_ms, lambda: self._tick(generation)
        )

    def _disarm(self) -> None:
        """Cancel the pending schedule and invalidate any in-flight firing."""
        self._generation += 1
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self._tick_source.cancel(handle)

    def _tick(self, generation: int) -> None:
        if generation != self._generation or self._state is not TimerState.RUNNING:
            logger.debug("Ignoring stale tick (generation %d)", generation)
            return

        self._remaining -= 1
        on_end = self._on_end
        self._on_tick(self._remaining)
        if self._remaining > 0:
            return

        if self._state is TimerState.RUNNING and generation == self._generation:
            self._disarm()
        elif self._state is TimerState.PAUSED and self._remaining == 0:
            # Paused from inside the final on_tick; nothing is left to resume.
            pass
        else:
            # Stopped or restarted from inside the final on_tick.
            return
        self._state = TimerState.EXPIRED
        logger.debug("Countdown expired after %d seconds", self._duration)
        on_end()
