"""Portfolio reports over the ledger."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from ..core.clock import IClock
from ..core.enums import CLOSED_STATUSES, AccountStatus
from ..core.errors import ValidationError
from ..core.models import FdAccount
from ..ledger.interfaces import Ledger

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, clock: IClock, ledger: Ledger) -> None:
        self._clock = clock
        self._ledger = ledger

    def _day_range(self, start: date, end: date) -> tuple[datetime, datetime]:
        if end < start:
            raise ValidationError(f"endDate {end} is before startDate {start}")
        tz = self._clock.tz
        return (
            datetime.combine(start, time.min, tzinfo=tz),
            datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz) - timedelta(microseconds=1),
        )

    def maturing_within(self, days: int) -> list[FdAccount]:
        """Active accounts maturing between today and ``today + days``."""
        if days < 0:
            raise ValidationError("days must be non-negative")
        today = self._clock.today()
        return self._ledger.accounts_maturing_between(today, today + timedelta(days=days))

    def created_between(self, start: date, end: date) -> list[FdAccount]:
        lo, hi = self._day_range(start, end)
        return self._ledger.accounts_created_between(lo, hi)

    def closed_between(
        self, start: date, end: date, status: str | None = None,
    ) -> list[FdAccount]:
        """Closed accounts, optionally limited to one closed status.

        A status that is not a closed status yields an empty report.
        """
        lo, hi = self._day_range(start, end)
        statuses = list(CLOSED_STATUSES)
        if status and status.strip():
            try:
                requested = AccountStatus(status.strip().upper())
            except ValueError:
                requested = None
            if requested not in CLOSED_STATUSES:
                logger.warning("Invalid status %r for closed accounts report", status)
                return []
            statuses = [requested]
        return self._ledger.accounts_closed_between(lo, hi, statuses)
