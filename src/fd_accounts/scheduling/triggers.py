"""Trigger windows for the scheduled jobs.

A window holds for a whole hour (optionally from a minute onwards) so a
poll every minute is guaranteed to land inside it at least once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from ..core.config import SchedulerConfig
from ..core.enums import JobName


@dataclass(frozen=True)
class JobTrigger:
    job: str
    description: str
    predicate: Callable[[datetime], bool]

    def holds(self, now: datetime) -> bool:
        return self.predicate(now)


def hour_window(hour: int, from_minute: int = 0) -> Callable[[datetime], bool]:
    def _holds(now: datetime) -> bool:
        return now.hour == hour and now.minute >= from_minute
    return _holds


def monthly_window(day: int, hour: int) -> Callable[[datetime], bool]:
    def _holds(now: datetime) -> bool:
        return now.day == day and now.hour == hour
    return _holds


def default_triggers(cfg: SchedulerConfig | None = None) -> list[JobTrigger]:
    """Trigger windows for the four batch jobs, in firing order."""
    cfg = cfg or SchedulerConfig()
    return [
        JobTrigger(
            job=JobName.INTEREST_CALCULATION.value,
            description=f"daily, hour {cfg.interest_calculation_hour:02d}",
            predicate=hour_window(cfg.interest_calculation_hour),
        ),
        JobTrigger(
            job=JobName.INTEREST_PAYOUT.value,
            description=(
                f"daily, {cfg.interest_payout_hour:02d}:"
                f"{cfg.interest_payout_minute:02d}-{cfg.interest_payout_hour:02d}:59"
            ),
            predicate=hour_window(cfg.interest_payout_hour, cfg.interest_payout_minute),
        ),
        JobTrigger(
            job=JobName.MATURITY_PROCESSING.value,
            description=f"daily, hour {cfg.maturity_processing_hour:02d}",
            predicate=hour_window(cfg.maturity_processing_hour),
        ),
        JobTrigger(
            job=JobName.MONTHLY_STATEMENT.value,
            description=(
                f"day {cfg.monthly_statement_day} of month, "
                f"hour {cfg.monthly_statement_hour:02d}"
            ),
            predicate=monthly_window(cfg.monthly_statement_day, cfg.monthly_statement_hour),
        ),
    ]
