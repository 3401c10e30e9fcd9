"""Session: owns a CountdownTimer and persists its progress to a store."""

from __future__ import annotations

import logging
from typing import Any, Callable

from tickdown.core.store import KeyValueStore
from tickdown.core.timer import CountdownTimer, TimerState

logger = logging.getLogger(__name__)

REMAINING_KEY = "countdown.remaining"
STATE_KEY = "countdown.state"

_ACTIVE_STATES = frozenset({TimerState.RUNNING, TimerState.PAUSED})


class NoSavedCountdownError(Exception):
    """Raised when asked to continue a countdown but none is saved."""


def format_remaining(seconds: int) -> str:
    """Format *seconds* as ``M:SS``."""
    return f"{seconds // 60}:{seconds % 60:02d}"


class Session:
    """Wires a timer to a key-value store.

    ``remaining`` is written as a decimal string after every transition and
    every tick, so a later process can pick the countdown up with
    ``resume_saved()``.
    """

    def __init__(self, timer: CountdownTimer, store: KeyValueStore) -> None:
        self._timer = timer
        self._store = store

    # -- public API ----------------------------------------------------------

    def start(
        self,
        seconds: int,
        on_tick: Callable[[int], Any] | None = None,
        on_end: Callable[[], Any] | None = None,
    ) -> str:
        """Start a fresh countdown of *seconds*, replacing any active one."""
        self._timer.start(seconds, *self._wrap(on_tick, on_end))
        self._save()
        return f"Countdown started: {format_remaining(seconds)}"

    def resume_saved(
        self,
        on_tick: Callable[[int], Any] | None = None,
        on_end: Callable[[], Any] | None = None,
    ) -> str:
        """Start a new cycle from the remaining time found in the store."""
        saved = self.saved_remaining()
        if not saved:
            raise NoSavedCountdownError("No saved countdown to resume")
        self._timer.start(saved, *self._wrap(on_tick, on_end))
        self._save()
        return f"Countdown resumed: {format_remaining(saved)} remaining"

    def pause(self) -> str:
        """Pause the running countdown and persist where it stopped."""
        self._timer.pause()
        if self._timer.get_state() is not TimerState.PAUSED:
            return "No running countdown"
        self._save()
        return f"Countdown paused at {format_remaining(self._timer.get_remaining())} remaining"

    def resume(self) -> str:
        """Resume a paused countdown in this process."""
        was_paused = self._timer.get_state() is TimerState.PAUSED
        self._timer.resume()
        if not was_paused or self._timer.get_state() is not TimerState.RUNNING:
            return "No paused countdown"
        self._save()
        return f"Countdown resumed: {format_remaining(self._timer.get_remaining())} remaining"

    def stop(self) -> str:
        """Stop any countdown and reset the saved one to idle."""
        self._timer.stop()
        self._save()
        return "Countdown cleared"

    def status(self) -> tuple[str, int]:
        """Return ``(message, exit_code)``.

        Uses the live timer when it is active, otherwise whatever a previous
        process left in the store.
        """
        state = self._timer.get_state()
        if state in _ACTIVE_STATES:
            remaining = self._timer.get_remaining()
        else:
            state = self._saved_state()
            remaining = self.saved_remaining() or 0

        if state == TimerState.RUNNING and remaining > 0:
            return f"{format_remaining(remaining)} remaining", 0
        if state == TimerState.PAUSED and remaining > 0:
            return f"{format_remaining(remaining)} remaining (paused)", 0
        if state == TimerState.EXPIRED:
            return "Countdown expired", 1
        return "No active countdown", 1

    def saved_remaining(self) -> int | None:
        """Return the persisted remaining seconds, or ``None`` if unusable."""
        raw = self._store.get(REMAINING_KEY)
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring malformed saved remaining %r", raw)
            return None
        if value < 0:
            logger.warning("Ignoring negative saved remaining %r", raw)
            return None
        return value

    # -- private helpers -----------------------------------------------------

    def _wrap(
        self,
        on_tick: Callable[[int], Any] | None,
        on_end: Callable[[], Any] | None,
    ) -> tuple[Callable[[int], None], Callable[[], None]]:
        """Return callbacks that persist before delegating to the caller's."""

        def tick(remaining: int) -> None:
            self._save()
            if on_tick is not None:
                on_tick(remaining)

        def end() -> None:
            self._save()
            if on_end is not None:
                on_end()

        return tick, end

    def _saved_state(self) -> TimerState:
        raw = self._store.get(STATE_KEY)
        try:
            return TimerState(raw) if raw is not None else TimerState.IDLE
        except ValueError:
            logger.warning("Ignoring unknown saved state %r", raw)
            return TimerState.IDLE

    def _save(self) -> None:
        self._store.update(
            {
                REMAINING_KEY: str(self._timer.get_remaining()),
                STATE_KEY: self._timer.get_state().value,
            }
        )
