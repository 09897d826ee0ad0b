"""Once-per-logical-day dispatch gate.

For every registered job the tracker remembers the logical calendar date on
which it last started. A job is claimed for a date *before* its body runs,
so a slow or failing body is never re-fired on the same date.
"""

from __future__ import annotations

import logging
import threading
from datetime import date

logger = logging.getLogger(__name__)


class JobDispatchTracker:
    """Thread-safe ``job -> last fired logical date`` map."""

    def __init__(self, jobs: list[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._last_fired: dict[str, date | None] = {}
        for job in jobs or []:
            self.register(job)

    def register(self, job: str) -> None:
        with self._lock:
            self._last_fired.setdefault(job, None)

    @property
    def jobs(self) -> list[str]:
        with self._lock:
            return list(self._last_fired)

    def last_fired(self, job: str) -> date | None:
        with self._lock:
            return self._last_fired.get(job)

    def is_due(self, job: str, logical_date: date) -> bool:
        """True when ``job`` has not yet fired for ``logical_date``."""
        with self._lock:
            return self._last_fired.get(job) != logical_date

    def try_claim(self, job: str, logical_date: date) -> bool:
        """Atomically mark ``job`` as fired for ``logical_date``.

        Returns False if it was already claimed for that date.
        """
        with self._lock:
            if self._last_fired.get(job) == logical_date:
                return False
            self._last_fired[job] = logical_date
        logger.debug("Claimed %s for %s", job, logical_date)
        return True

    def reset(self, job: str | None = None) -> None:
        """Forget firing history for one job, or for all jobs."""
        with self._lock:
            if job is None:
                for name in self._last_fired:
                    self._last_fired[name] = None
            else:
                self._last_fired[job] = None
        logger.warning("Dispatch tracker reset (%s)", job or "all jobs")

    def snapshot(self) -> dict[str, str | None]:
        with self._lock:
            return {
                name: (fired.isoformat() if fired is not None else None)
                for name, fired in self._last_fired.items()
            }
