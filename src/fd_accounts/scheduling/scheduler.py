"""Polling dispatcher driven by wall-clock ticks, gated on logical time.

Each tick reads the clock once, then for every trigger whose window holds
claims the job for today's logical date and runs it. Only *today* is ever
evaluated: if the logical clock jumps several days in one step, windows on
the skipped days are never seen and their jobs do not fire for those days.
This keeps the test clock simple; it is not a backfill engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Protocol

from ..core.clock import IClock
from ..core.enums import TriggerSource
from ..observability.metrics import update_clock_offset
from .tracker import JobDispatchTracker
from .triggers import JobTrigger

logger = logging.getLogger(__name__)


class JobRunner(Protocol):
    def run(self, job: str, source: TriggerSource = TriggerSource.MANUAL) -> Any:
        ...


class TimeDrivenScheduler:
    """Fires each registered job at most once per logical calendar day.

    Parameters
    ----------
    clock:
        Source of logical time.
    tracker:
        Per-job last-fired state; shared with the admin surface.
    runner:
        Executes job bodies (usually a ``JobLauncher``).
    triggers:
        Trigger windows, evaluated in order on every tick.
    interval:
        Wall-clock seconds between ticks when running the background loop.
    """

    def __init__(
        self,
        clock: IClock,
        tracker: JobDispatchTracker,
        runner: JobRunner,
        triggers: list[JobTrigger],
        *,
        interval: float = 60.0,
    ) -> None:
        self._clock = clock
        self._tracker = tracker
        self._runner = runner
        self._triggers = list(triggers)
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._running = False
        self._tick_count = 0
        self._count_lock = threading.Lock()
        for trigger in self._triggers:
            tracker.register(trigger.job)

    @property
    def triggers(self) -> list[JobTrigger]:
        return list(self._triggers)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        with self._count_lock:
            return self._tick_count

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def tick(self) -> list[str]:
        """Evaluate every trigger once; returns the jobs that were started."""
        now = self._clock.now()
        today = now.date()
        with self._count_lock:
            self._tick_count += 1
        update_clock_offset(self._clock.offset)

        fired: list[str] = []
        for trigger in self._triggers:
            if not trigger.holds(now):
                continue
            if not self._tracker.try_claim(trigger.job, today):
                continue

            logger.info(
                "Trigger window reached for %s at logical %s", trigger.job, now.isoformat(),
            )
            fired.append(trigger.job)
            try:
                self._runner.run(trigger.job, source=TriggerSource.SCHEDULER)
            except Exception:
                logger.exception(
                    "Scheduled job %s failed; not retried until the next logical day",
                    trigger.job,
                )
        return fired

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start ticking in the background."""
        if self._running:
            logger.warning("Scheduler is already running")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="fd-scheduler")
        logger.info(
            "Scheduler started (interval=%.1fs, jobs=%s)",
            self._interval, [t.job for t in self._triggers],
        )

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Scheduler stopped after %d ticks", self.tick_count)

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.to_thread(self.tick)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduler tick failed")
            await asyncio.sleep(self._interval)
