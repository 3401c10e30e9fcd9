"""Tests for the tick sources."""

from __future__ import annotations

import asyncio

from tickdown.core.ticks import AsyncioTickSource, ManualTickSource
from tickdown.core.timer import CountdownTimer, TimerState

# ---------------------------------------------------------------------------
# ManualTickSource
# ---------------------------------------------------------------------------


class TestManualTickSource:
    def test_advance_fires_each_schedule(self) -> None:
        source = ManualTickSource()
        fired: list[str] = []
        source.schedule(1000, lambda: fired.append("a"))
        source.schedule(500, lambda: fired.append("b"))
        source.advance(2)
        assert fired == ["a", "b", "a", "b"]

    def test_handles_are_distinct(self) -> None:
        source = ManualTickSource()
        assert source.schedule(1000, lambda: None) != source.schedule(1000, lambda: None)

    def test_cancelled_schedule_never_fires(self) -> None:
        source = ManualTickSource()
        fired: list[int] = []
        handle = source.schedule(1000, lambda: fired.append(1))
        source.cancel(handle)
        source.advance(3)
        assert fired == []
        assert source.pending() == 0

    def test_cancel_unknown_handle_is_harmless(self) -> None:
        source = ManualTickSource()
        source.cancel(42)
        assert source.pending() == 0

    def test_callback_can_cancel_a_later_schedule(self) -> None:
        source = ManualTickSource()
        fired: list[str] = []
        second = None

        def first() -> None:
            fired.append("first")
            source.cancel(second)

        source.schedule(1000, first)
        second = source.schedule(1000, lambda: fired.append("second"))
        source.advance(1)
        assert fired == ["first"]


# ---------------------------------------------------------------------------
# AsyncioTickSource
# ---------------------------------------------------------------------------


class TestAsyncioTickSource:
    def test_fires_repeatedly_until_cancelled(self) -> None:
        async def main() -> tuple[int, int]:
            source = AsyncioTickSource()
            fired: list[int] = []
            handle = source.schedule(1, lambda: fired.append(1))
            await asyncio.sleep(0.1)
            source.cancel(handle)
            seen = len(fired)
            await asyncio.sleep(0.05)
            return seen, len(fired)

        seen, after = asyncio.run(main())
        assert seen >= 2
        assert after == seen

    def test_cancel_from_inside_callback(self) -> None:
        async def main() -> int:
            source = AsyncioTickSource()
            fired: list[int] = []
            handle = None

            def once() -> None:
                fired.append(1)
                source.cancel(handle)

            handle = source.schedule(1, once)
            await asyncio.sleep(0.05)
            return len(fired)

        assert asyncio.run(main()) == 1

    def test_cancel_twice_is_harmless(self) -> None:
        async def main() -> bool:
            source = AsyncioTickSource()
            handle = source.schedule(1000, lambda: None)
            source.cancel(handle)
            source.cancel(handle)
            return handle.cancelled

        assert asyncio.run(main()) is True

    def test_drives_a_countdown_to_expiry(self) -> None:
        async def main() -> tuple[list[int], TimerState]:
            loop = asyncio.get_running_loop()
            finished = loop.create_future()
            ticks: list[int] = []
            timer = CountdownTimer(AsyncioTickSource(loop), interval_ms=1)
            timer.start(3, ticks.append, lambda: finished.set_result(None))
            await asyncio.wait_for(finished, timeout=5)
            return ticks, timer.get_state()

        ticks, state = asyncio.run(main())
        assert ticks == [2, 1, 0]
        assert state == TimerState.EXPIRED
