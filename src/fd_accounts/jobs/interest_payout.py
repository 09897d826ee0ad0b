"""Interest payout: pay out and zero the accrued interest on payout boundaries."""

from __future__ import annotations

import logging
from typing import Iterable

from ..core.enums import AccountStatus, BalanceType, JobName, TransactionType
from ..core.errors import DuplicatePostingError
from ..core.models import FdAccount, Transaction
from ..interest.boundary import is_boundary, parse_frequency, payout_amount, posting_key
from ..observability.metrics import record_duplicate_posting, record_posting
from .base import BatchJob, JobResult

logger = logging.getLogger(__name__)


class InterestPayoutJob(BatchJob):
    name = JobName.INTEREST_PAYOUT.value

    def accounts(self, result: JobResult) -> Iterable[FdAccount]:
        return self._ledger.iter_accounts(AccountStatus.ACTIVE, page_size=self._page_size)

    def process(self, account: FdAccount, result: JobResult) -> None:
        now = self._clock.now()
        today = now.date()
        frequency = parse_frequency(account.payout_freq)
        if frequency is None or not is_boundary(frequency, account.effective_date, today):
            return

        key = posting_key("payout", account.account_number, today, frequency)
        if self._ledger.has_posting(key):
            result.duplicates += 1
            record_duplicate_posting(TransactionType.INTEREST_PAYOUT.value)
            return

        balance = self._ledger.get_balance(account.account_number, BalanceType.FD_INTEREST)
        amount = payout_amount(balance)
        if amount is None:
            logger.debug("Nothing to pay out for %s", account.account_number)
            return

        txn = Transaction(
            account_number=account.account_number,
            transaction_type=TransactionType.INTEREST_PAYOUT,
            amount=amount,
            transaction_date=now,
            description=f"{frequency.value} interest payout - paid to customer account.",
            idempotency_key=key,
        )
        try:
            self._ledger.record_posting(txn, {BalanceType.FD_INTEREST: -amount})
        except DuplicatePostingError:
            result.duplicates += 1
            record_duplicate_posting(TransactionType.INTEREST_PAYOUT.value)
            return

        result.posted += 1
        record_posting(TransactionType.INTEREST_PAYOUT.value)
        logger.info("Paid out %s interest on %s", amount, account.account_number)
        self._transaction_alert(
            account, txn,
            f"Interest payout of {account.currency} {amount} has been credited to your account.",
            extra=f"Payout Frequency: {frequency.value}",
        )
