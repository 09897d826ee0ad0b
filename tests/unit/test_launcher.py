"""JobLauncher registry and run bookkeeping."""

import threading
import time

import pytest

from fd_accounts.core.enums import TriggerSource
from fd_accounts.core.errors import UnknownJobError
from fd_accounts.jobs.base import BatchJob
from fd_accounts.jobs.launcher import JobLauncher


class CountingJob(BatchJob):
    name = "counting"

    def __init__(self, *args, fail: bool = False, delay: float = 0.0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail = fail
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def accounts(self, result):
        if self.fail:
            raise RuntimeError("listing accounts failed")
        return self._ledger.iter_accounts()

    def process(self, account, result):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(self.delay)
        with self._guard:
            self.active -= 1
        result.posted += 1


@pytest.fixture
def make_job(logical_clock, ledger, publisher):
    def _make(**kwargs) -> CountingJob:
        return CountingJob(logical_clock, ledger, publisher, **kwargs)
    return _make


def test_unknown_job(make_job):
    launcher = JobLauncher([make_job()])
    with pytest.raises(UnknownJobError):
        launcher.run("no-such-job")


def test_run_reports_source_and_trace(make_job, make_account):
    make_account()
    launcher = JobLauncher([make_job()])
    result = launcher.run("counting", source=TriggerSource.SCHEDULER)
    data = result.to_dict()
    assert data["job"] == "counting"
    assert data["posted"] == 1
    assert data["source"] == "scheduler"
    assert data["trace_id"]


def test_body_failure_propagates(make_job):
    launcher = JobLauncher([make_job(fail=True)])
    with pytest.raises(RuntimeError):
        launcher.run("counting")


def test_same_job_never_interleaves(make_job, make_account):
    make_account()
    job = make_job(delay=0.05)
    launcher = JobLauncher([job])

    threads = [threading.Thread(target=launcher.run, args=("counting",)) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert job.max_active == 1


def test_job_names(make_job):
    assert JobLauncher([make_job()]).job_names == ["counting"]
