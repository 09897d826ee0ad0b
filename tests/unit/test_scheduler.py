"""TimeDrivenScheduler: windows, once-per-day gating and failure handling."""

import asyncio
import threading
from datetime import datetime, timezone

import pytest

from fd_accounts.core.enums import TriggerSource
from fd_accounts.scheduling.scheduler import TimeDrivenScheduler
from fd_accounts.scheduling.tracker import JobDispatchTracker
from fd_accounts.scheduling.triggers import default_triggers, hour_window, monthly_window


class RecordingRunner:
    def __init__(self, fail: set[str] | None = None) -> None:
        self.calls: list[tuple[str, TriggerSource]] = []
        self.fail = fail or set()

    def run(self, job, source=TriggerSource.MANUAL):
        self.calls.append((job, source))
        if job in self.fail:
            raise RuntimeError(f"{job} exploded")

    @property
    def jobs(self) -> list[str]:
        return [job for job, _ in self.calls]


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def scheduler(logical_clock, runner) -> TimeDrivenScheduler:
    return TimeDrivenScheduler(
        logical_clock, JobDispatchTracker(), runner, default_triggers(), interval=0.01,
    )


class TestWindows:
    def test_hour_window(self):
        holds = hour_window(0, from_minute=30)
        assert not holds(_at(2026, 1, 1, 0, 29))
        assert holds(_at(2026, 1, 1, 0, 30))
        assert holds(_at(2026, 1, 1, 0, 59))
        assert not holds(_at(2026, 1, 1, 1, 0))

    def test_monthly_window(self):
        holds = monthly_window(1, 23)
        assert holds(_at(2026, 2, 1, 23, 5))
        assert not holds(_at(2026, 2, 2, 23, 5))
        assert not holds(_at(2026, 2, 1, 22, 59))

    def test_default_trigger_order(self):
        assert [t.job for t in default_triggers()] == [
            "interest-calculation",
            "interest-payout",
            "maturity-processing",
            "monthly-statement",
        ]


class TestTick:
    def test_nothing_outside_windows(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 2, 3, 15, 0))
        assert scheduler.tick() == []
        assert runner.calls == []

    def test_registers_jobs_with_tracker(self, scheduler):
        assert scheduler.tick_count == 0
        assert [t.job for t in scheduler.triggers] == [
            "interest-calculation", "interest-payout",
            "maturity-processing", "monthly-statement",
        ]

    def test_fires_once_per_logical_day(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 1))
        assert scheduler.tick() == ["interest-calculation"]
        logical_clock.advance_by(minutes=5)
        assert scheduler.tick() == []
        assert runner.jobs == ["interest-calculation"]
        assert runner.calls[0][1] == TriggerSource.SCHEDULER

    def test_payout_follows_accrual_in_same_hour(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 0))
        scheduler.tick()
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 30))
        assert scheduler.tick() == ["interest-payout"]
        assert runner.jobs == ["interest-calculation", "interest-payout"]

    def test_jump_straight_into_late_window_fires_both_in_order(
        self, scheduler, logical_clock, runner,
    ):
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 45))
        assert scheduler.tick() == ["interest-calculation", "interest-payout"]

    def test_fires_again_next_day(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 4, 1, 1, 10))
        scheduler.tick()
        logical_clock.set_absolute(_at(2026, 4, 2, 1, 10))
        scheduler.tick()
        assert runner.jobs == ["maturity-processing", "maturity-processing"]

    def test_monthly_statement_window(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 5, 1, 23, 0))
        assert scheduler.tick() == ["monthly-statement"]

    def test_failed_job_stays_claimed_for_the_day(self, logical_clock):
        runner = RecordingRunner(fail={"interest-calculation"})
        tracker = JobDispatchTracker()
        scheduler = TimeDrivenScheduler(logical_clock, tracker, runner, default_triggers())
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 5))

        assert scheduler.tick() == ["interest-calculation"]
        assert scheduler.tick() == []
        assert runner.jobs == ["interest-calculation"]
        assert tracker.snapshot()["interest-calculation"] == "2026-04-01"

    def test_failure_does_not_block_other_jobs(self, logical_clock):
        runner = RecordingRunner(fail={"interest-calculation"})
        scheduler = TimeDrivenScheduler(
            logical_clock, JobDispatchTracker(), runner, default_triggers(),
        )
        logical_clock.set_absolute(_at(2026, 4, 1, 0, 40))
        assert scheduler.tick() == ["interest-calculation", "interest-payout"]

    def test_multi_day_jump_skips_intermediate_windows(self, logical_clock, runner):
        tracker = JobDispatchTracker()
        scheduler = TimeDrivenScheduler(logical_clock, tracker, runner, default_triggers())
        logical_clock.set_absolute(_at(2026, 3, 31, 23, 30))
        scheduler.tick()
        # Straight past every 1 April window: they are never observed.
        logical_clock.set_absolute(_at(2026, 4, 2, 0, 10))
        scheduler.tick()

        assert runner.jobs == ["interest-calculation"]
        assert tracker.last_fired("interest-calculation").isoformat() == "2026-04-02"
        assert tracker.last_fired("maturity-processing") is None

    def test_tracker_reset_allows_refire(self, logical_clock, runner):
        tracker = JobDispatchTracker()
        scheduler = TimeDrivenScheduler(logical_clock, tracker, runner, default_triggers())
        logical_clock.set_absolute(_at(2026, 4, 1, 1, 0))
        scheduler.tick()
        tracker.reset("maturity-processing")
        scheduler.tick()
        assert runner.jobs == ["maturity-processing", "maturity-processing"]


class TestLifecycle:
    async def test_start_and_stop(self, scheduler, logical_clock, runner):
        logical_clock.set_absolute(_at(2026, 4, 1, 1, 0))
        await scheduler.start()
        assert scheduler.is_running
        for _ in range(100):
            if scheduler.tick_count >= 2:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.tick_count >= 2
        assert runner.jobs == ["maturity-processing"]

    async def test_double_start_is_ignored(self, scheduler):
        await scheduler.start()
        await scheduler.start()
        await scheduler.stop()
        assert not scheduler.is_running


class TestTickCount:
    def test_concurrent_ticks_are_all_counted(self, scheduler):
        def worker():
            for _ in range(250):
                scheduler.tick()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert scheduler.tick_count == 2000
