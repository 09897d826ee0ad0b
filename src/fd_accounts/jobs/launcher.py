"""Job registry and launcher shared by the scheduler and the manual trigger.

Each job has its own lock: a manual run and a scheduled run of the same job
never interleave, while different jobs may run side by side.
"""

from __future__ import annotations

import logging
import threading
import time

from ..core.enums import TriggerSource
from ..core.errors import UnknownJobError
from ..observability.logger import new_trace_id
from ..observability.metrics import record_job_duration, record_job_failure, record_job_fired
from .base import BatchJob, JobResult

logger = logging.getLogger(__name__)


class JobLauncher:
    def __init__(self, jobs: list[BatchJob] | None = None) -> None:
        self._jobs: dict[str, BatchJob] = {}
        self._locks: dict[str, threading.Lock] = {}
        for job in jobs or []:
            self.register(job)

    def register(self, job: BatchJob) -> None:
        self._jobs[job.name] = job
        self._locks[job.name] = threading.Lock()

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def get(self, name: str) -> BatchJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise UnknownJobError(f"Unknown job: {name}") from None

    def run(self, name: str, source: TriggerSource = TriggerSource.MANUAL) -> JobResult:
        """Run a job body now. Exceptions from the body propagate."""
        job = self.get(name)
        trace_id = new_trace_id()
        record_job_fired(name, source.value)
        logger.info("Starting %s (source=%s, trace_id=%s)", name, source.value, trace_id)

        started = time.monotonic()
        with self._locks[name]:
            try:
                result = job.run()
            except Exception:
                record_job_failure(name)
                raise
            finally:
                record_job_duration(name, time.monotonic() - started)
        result.details["source"] = source.value
        result.details["trace_id"] = trace_id
        return result
