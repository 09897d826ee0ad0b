"""Maturity processing: close out deposits whose maturity date has arrived.

Every ACTIVE account with ``maturity_date <= today`` becomes MATURED. Accounts
with a renew instruction additionally roll principal plus interest into a new
deposit numbered ``<original>-R`` at the prevailing renewal rate.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from dateutil.relativedelta import relativedelta

from ..core.enums import (
    AccountStatus,
    AlertType,
    BalanceType,
    JobName,
    MaturityInstruction,
    TransactionType,
)
from ..core.errors import DuplicatePostingError
from ..core.events import TOPIC_ACCOUNT_MATURED, AccountMaturedEvent
from ..core.ids import content_hash
from ..core.models import FdAccount, Transaction
from ..interest.simple import maturity_amount
from ..observability.metrics import record_posting
from .base import BatchJob, JobResult

logger = logging.getLogger(__name__)

RENEWAL_SUFFIX = "-R"


class MaturityProcessingJob(BatchJob):
    name = JobName.MATURITY_PROCESSING.value

    def __init__(self, *args, renewal_rate: Decimal = Decimal("6.50"), **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._renewal_rate = renewal_rate

    def accounts(self, result: JobResult) -> Iterable[FdAccount]:
        return self._ledger.iter_accounts(
            AccountStatus.ACTIVE,
            page_size=self._page_size,
            maturing_on_or_before=self._clock.today(),
        )

    def process(self, account: FdAccount, result: JobResult) -> None:
        now = self._clock.now()
        logger.info("Processing maturity for account %s", account.account_number)

        renewed: FdAccount | None = None
        if account.maturity_instruction == MaturityInstruction.RENEW_PRINCIPAL_AND_INTEREST:
            renewed = self._renew(account)

        account.status = AccountStatus.MATURED
        account.updated_at = now
        account.closed_at = now
        self._ledger.save_account(account)
        result.posted += 1
        result.details["renewed"] = result.details.get("renewed", 0) + (1 if renewed else 0)

        self._publisher.publish(TOPIC_ACCOUNT_MATURED, AccountMaturedEvent(
            account_number=account.account_number,
            maturity_amount=account.maturity_amount,
            maturity_date=account.maturity_date,
            customer_ids_to_notify=account.customer_ids,
            timestamp=now,
        ))
        self._alert(
            account,
            AlertType.ACCOUNT_STATUS_CHANGED,
            f"Account {account.account_number} has matured",
            f"Maturity Amount: {account.maturity_amount}, "
            f"Maturity Date: {account.maturity_date.isoformat()}, "
            f"Instruction: {account.maturity_instruction.value}",
        )
        if renewed is not None:
            self._alert(
                renewed,
                AlertType.ACCOUNT_CREATED,
                f"FD account {renewed.account_number} renewed from matured account "
                f"{account.account_number}",
                f"Original Account: {account.account_number}, "
                f"New Principal: {renewed.principal_amount}, "
                f"New Maturity Date: {renewed.maturity_date.isoformat()}",
            )

    def _renew(self, account: FdAccount) -> FdAccount | None:
        """Open (or finish opening) the ``<n>-R`` deposit for ``account``.

        A renewal saved on an earlier run whose deposit posting never landed
        is completed rather than skipped.
        """
        number = account.account_number + RENEWAL_SUFFIX
        now = self._clock.now()
        existing = self._ledger.get_account(number)
        if existing is not None:
            if self._ledger.list_transactions(number):
                logger.warning("Renewal %s already exists; not renewing again", number)
                return None
            logger.warning("Renewal %s has no deposit; completing it", number)
            renewed = existing
        else:
            today = now.date()
            principal = account.maturity_amount
            renewed = account.model_copy(
                deep=True,
                update={
                    "account_number": number,
                    "status": AccountStatus.ACTIVE,
                    "interest_rate": self._renewal_rate,
                    "effective_rate": None,
                    "principal_amount": principal,
                    "maturity_amount": maturity_amount(
                        principal, self._renewal_rate, account.term_in_months,
                    ),
                    "effective_date": today,
                    "maturity_date": today + relativedelta(months=account.term_in_months),
                    "created_at": now,
                    "updated_at": None,
                    "closed_at": None,
                },
            )
            self._ledger.save_account(renewed)

        principal = renewed.principal_amount
        try:
            self._ledger.record_posting(
                Transaction(
                    account_number=number,
                    transaction_type=TransactionType.RENEWAL_DEPOSIT,
                    amount=principal,
                    transaction_date=now,
                    description=f"Renewal of matured account {account.account_number}.",
                    idempotency_key=content_hash("renewal", number),
                ),
                {BalanceType.FD_PRINCIPAL: principal},
            )
        except DuplicatePostingError:
            logger.warning("Renewal deposit for %s already posted", number)
            return None
        record_posting(TransactionType.RENEWAL_DEPOSIT.value)
        logger.info(
            "Renewed %s as %s (principal %s at %s%%)",
            account.account_number, number, principal, self._renewal_rate,
        )
        return renewed
