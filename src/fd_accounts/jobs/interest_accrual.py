"""Interest accrual: compound each account's interest on its boundary dates."""

from __future__ import annotations

import logging
from typing import Iterable

from ..core.enums import AccountStatus, BalanceType, JobName, TransactionType
from ..core.errors import DuplicatePostingError
from ..core.models import FdAccount, Transaction
from ..interest.boundary import compound, is_boundary, parse_frequency, posting_key
from ..observability.metrics import record_duplicate_posting, record_posting
from .base import BatchJob, JobResult

logger = logging.getLogger(__name__)


class InterestAccrualJob(BatchJob):
    name = JobName.INTEREST_CALCULATION.value

    def accounts(self, result: JobResult) -> Iterable[FdAccount]:
        return self._ledger.iter_accounts(AccountStatus.ACTIVE, page_size=self._page_size)

    def process(self, account: FdAccount, result: JobResult) -> None:
        now = self._clock.now()
        today = now.date()
        frequency = parse_frequency(account.compounding_frequency)
        if frequency is None or not is_boundary(frequency, account.effective_date, today):
            return

        key = posting_key("accrual", account.account_number, today, frequency)
        if self._ledger.has_posting(key):
            result.duplicates += 1
            record_duplicate_posting(TransactionType.INTEREST_ACCRUAL.value)
            logger.info(
                "Interest for %s on %s already posted", account.account_number, today,
            )
            return

        current = self._ledger.get_balance(account.account_number, BalanceType.FD_INTEREST)
        outcome = compound(
            current, account.principal_amount, account.rate_for_compounding, frequency,
        )
        if not outcome.postable:
            return

        txn = Transaction(
            account_number=account.account_number,
            transaction_type=TransactionType.INTEREST_ACCRUAL,
            amount=outcome.delta,
            transaction_date=now,
            description=f"{frequency.value} compound interest accrual.",
            idempotency_key=key,
        )
        try:
            self._ledger.record_posting(txn, {BalanceType.FD_INTEREST: outcome.delta})
        except DuplicatePostingError:
            result.duplicates += 1
            record_duplicate_posting(TransactionType.INTEREST_ACCRUAL.value)
            return

        result.posted += 1
        record_posting(TransactionType.INTEREST_ACCRUAL.value)
        logger.info(
            "Accrued %s on %s (%s, interest now %s)",
            outcome.delta, account.account_number, frequency.value, outcome.new_interest,
        )
        self._transaction_alert(
            account, txn,
            f"Transaction {txn.transaction_type.value}: +{txn.amount} "
            f"on account {account.account_number}",
        )
