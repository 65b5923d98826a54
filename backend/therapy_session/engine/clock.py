"""Elapsed-time accounting and the session tick source.

Elapsed time is always recomputed from timestamps. Nothing here counts ticks,
so a missed or late tick (host backgrounded, event loop busy) never causes
drift.
"""

import asyncio
import math
import time
from typing import Callable

from therapy_session.core.logging import get_logger

logger = get_logger(__name__)


class ElapsedClock:
    """
    Wall-clock elapsed seconds since start, excluding paused intervals.

    The clock has no notion of lifecycle rules; the engine decides when
    pause/resume are legal and calls through.
    """

    def __init__(self, time_source: Callable[[], float] = time.monotonic):
        """
        @param time_source - Monotonic seconds source, injectable for tests
        """
        self._now = time_source
        self.start_instant: float | None = None
        self.paused_accumulator = 0.0
        self.pause_instant: float | None = None
        self.stop_instant: float | None = None
        self._last_elapsed = 0

    @property
    def started(self) -> bool:
        return self.start_instant is not None

    @property
    def paused(self) -> bool:
        return self.pause_instant is not None

    @property
    def stopped(self) -> bool:
        return self.stop_instant is not None

    def now(self) -> float:
        return self._now()

    def start(self) -> None:
        self.start_instant = self._now()
        self.paused_accumulator = 0.0
        self.pause_instant = None
        self.stop_instant = None
        self._last_elapsed = 0

    def pause(self) -> None:
        if self.pause_instant is None:
            self.pause_instant = self._now()

    def resume(self) -> None:
        if self.pause_instant is not None:
            self.paused_accumulator += self._now() - self.pause_instant
            self.pause_instant = None

    def stop(self) -> None:
        """Freeze the clock for good. A paused clock stays frozen at its pause instant."""
        if self.stop_instant is None:
            self.stop_instant = self.pause_instant if self.pause_instant is not None else self._now()

    def elapsed_seconds(self) -> int:
        if self.start_instant is None:
            return 0

        if self.stop_instant is not None:
            reference = self.stop_instant
        elif self.pause_instant is not None:
            reference = self.pause_instant
        else:
            reference = self._now()

        elapsed = math.floor(reference - self.start_instant - self.paused_accumulator)
        # A source that steps backwards must not make elapsed time go down
        self._last_elapsed = max(self._last_elapsed, elapsed, 0)
        return self._last_elapsed


class Ticker:
    """
    Fires a callback on a fixed interval while active.

    Runs as a task on the host's event loop. Each tick is independent, so
    a tick that fires late simply reports the recomputed elapsed time.
    """

    def __init__(self, interval: float, on_tick: Callable[[], None] | None = None):
        """
        @param interval - Seconds between ticks
        @param on_tick - Called once per tick
        """
        if interval <= 0:
            raise ValueError("Tick interval must be positive")
        self.interval = interval
        self.on_tick = on_tick
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop (idempotent)."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self.on_tick is None:
                continue
            try:
                self.on_tick()
            except Exception:
                logger.exception("Tick callback failed")
