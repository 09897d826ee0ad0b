"""Batch jobs: interest accrual, interest payout, maturity, monthly statements."""

from .base import BatchJob, JobResult
from .interest_accrual import InterestAccrualJob
from .interest_payout import InterestPayoutJob
from .launcher import JobLauncher
from .maturity import MaturityProcessingJob
from .statements import MonthlyStatementJob

__all__ = [
    "BatchJob",
    "InterestAccrualJob",
    "InterestPayoutJob",
    "JobLauncher",
    "JobResult",
    "MaturityProcessingJob",
    "MonthlyStatementJob",
]
