"""Fixed-period inference cycle scheduler with single-flight ticks."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from cv.exceptions import FrameUnavailableError
from orchestrator.exceptions import AlreadyRunningError, NotRunningError
from orchestrator.types import SchedulerState, SchedulerStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CycleScheduler(Generic[T]):
    """Fire `run_cycle` every period, never more than one at a time.

    A tick that arrives while a cycle is in flight is dropped. Results of a
    cycle that finishes after `stop()` are discarded instead of being passed
    to `on_result`. Cycle failures are logged and counted; the tick loop
    keeps going.
    """

    def __init__(
        self,
        run_cycle: Callable[[], Awaitable[T]],
        on_result: Callable[[T], object],
        on_error: Optional[Callable[[BaseException], object]] = None,
    ):
        self._run_cycle = run_cycle
        self._on_result = on_result
        self._on_error = on_error
        self._running = False
        self._generation = 0
        self._period: float | None = None
        self._ticker: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None
        self._stats = SchedulerStats()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> SchedulerState:
        if not self._running:
            return SchedulerState.STOPPED
        if self._in_flight is not None and not self._in_flight.done():
            return SchedulerState.CYCLE_IN_FLIGHT
        return SchedulerState.IDLE

    @property
    def period_ms(self) -> float | None:
        return None if self._period is None else self._period * 1000.0

    def start(self, period_ms: float) -> None:
        if self._running:
            raise AlreadyRunningError("Cycle scheduler is already running")
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")

        loop = asyncio.get_running_loop()
        self._running = True
        self._generation += 1
        self._period = period_ms / 1000.0
        self._ticker = loop.create_task(
            self._tick_loop(self._generation, self._period),
            name=f"cycle-ticker-{self._generation}",
        )
        logger.info("Cycle scheduler started (period=%.0fms)", period_ms)

    def stop(self) -> None:
        if not self._running:
            raise NotRunningError("Cycle scheduler is not running")
        self._running = False
        # Bumping the generation marks any in-flight cycle as stale.
        self._generation += 1
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        logger.info("Cycle scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any, to finish."""
        task = self._in_flight
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        if self._running:
            self.stop()
        await self.wait_idle()

    def stats(self) -> dict:
        return {
            "state": self.state.value,
            "period_ms": self.period_ms,
            **self._stats.to_dict(),
        }

    async def _tick_loop(self, generation: int, period: float) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while generation == self._generation:
            self._tick(generation)
            next_tick += period
            delay = next_tick - loop.time()
            if delay < -period:
                # Reset schedule if heavily behind instead of bursting ticks.
                next_tick = loop.time()
                delay = 0.0
            await asyncio.sleep(max(0.0, delay))

    def _tick(self, generation: int) -> bool:
        self._stats.ticks += 1
        if self._in_flight is not None and not self._in_flight.done():
            self._stats.ticks_skipped += 1
            logger.debug("Tick skipped: previous cycle still in flight")
            return False
        self._in_flight = asyncio.get_running_loop().create_task(
            self._run_one(generation),
            name=f"cycle-{self._stats.ticks}",
        )
        return True

    async def _run_one(self, generation: int) -> None:
        try:
            result = await self._run_cycle()
        except FrameUnavailableError:
            self._stats.cycles_without_frame += 1
            logger.debug("No frame available; cycle skipped")
            return
        except Exception as exc:
            self._record_failure(exc)
            logger.exception("Inference cycle failed")
            return

        if generation != self._generation:
            self._stats.cycles_discarded += 1
            logger.debug("Discarding result of a cycle that finished after stop")
            return

        try:
            self._on_result(result)
        except Exception as exc:
            self._record_failure(exc)
            logger.exception("Failed to apply cycle result")
            return
        self._stats.cycles_completed += 1

    def _record_failure(self, exc: BaseException) -> None:
        self._stats.cycles_failed += 1
        self._stats.last_error = f"{type(exc).__name__}: {exc}"
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Cycle error callback failed")
