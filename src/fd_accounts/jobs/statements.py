"""Monthly statements for every active account, covering the previous month."""

from __future__ import annotations

import logging
from typing import Iterable

from ..accounts.statements import StatementBuilder, previous_month
from ..core.enums import AccountStatus, JobName
from ..core.models import FdAccount
from .base import BatchJob, JobResult

logger = logging.getLogger(__name__)


class MonthlyStatementJob(BatchJob):
    name = JobName.MONTHLY_STATEMENT.value

    def __init__(self, *args, statements: StatementBuilder, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._statements = statements

    def accounts(self, result: JobResult) -> Iterable[FdAccount]:
        start, end = previous_month(self._clock.today())
        result.details["period_start"] = start.isoformat()
        result.details["period_end"] = end.isoformat()
        return self._ledger.iter_accounts(AccountStatus.ACTIVE, page_size=self._page_size)

    def process(self, account: FdAccount, result: JobResult) -> None:
        start, end = previous_month(self._clock.today())
        self._statements.generate(account.account_number, start, end)
        result.posted += 1
