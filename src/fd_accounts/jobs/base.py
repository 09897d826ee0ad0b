"""Batch job skeleton with per-account failure isolation.

A job walks a set of accounts and handles each in ``process``. One bad
account never aborts the run:

- ``ConfigurationError`` (e.g. an unknown frequency): warning, account skipped
- ``UpstreamUnavailable``: error, account counted as failed
- anything else: logged with traceback, account counted as failed
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from ..core.clock import IClock
from ..core.enums import AlertType
from ..core.errors import ConfigurationError, UpstreamUnavailable
from ..core.events import TOPIC_ALERT, AccountAlertEvent
from ..core.models import FdAccount, Transaction
from ..ledger.interfaces import Ledger
from ..notify.publisher import EventPublisher
from ..observability.metrics import record_account_failure
from ..upstream.customer import CustomerClient

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    job: str
    logical_time: datetime
    examined: int = 0
    posted: int = 0
    skipped: int = 0
    duplicates: int = 0
    failed: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "logical_time": self.logical_time.isoformat(),
            "examined": self.examined,
            "posted": self.posted,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
            "failed": self.failed,
            **self.details,
        }


class BatchJob(abc.ABC):
    """Base for the scheduled jobs."""

    name: str = ""

    def __init__(
        self,
        clock: IClock,
        ledger: Ledger,
        publisher: EventPublisher,
        customers: CustomerClient | None = None,
        *,
        page_size: int = 100,
    ) -> None:
        self._clock = clock
        self._ledger = ledger
        self._publisher = publisher
        self._customers = customers
        self._page_size = page_size

    def run(self) -> JobResult:
        result = JobResult(job=self.name, logical_time=self._clock.now())
        self._run_accounts(self.accounts(result), result)
        logger.info(
            "%s finished: examined=%d posted=%d skipped=%d duplicates=%d failed=%d",
            self.name, result.examined, result.posted, result.skipped,
            result.duplicates, result.failed,
        )
        return result

    @abc.abstractmethod
    def accounts(self, result: JobResult) -> Iterable[FdAccount]:
        """Accounts to process in this run."""

    @abc.abstractmethod
    def process(self, account: FdAccount, result: JobResult) -> None:
        """Handle one account; update counters on ``result``."""

    def _run_accounts(self, accounts: Iterable[FdAccount], result: JobResult) -> None:
        for account in accounts:
            result.examined += 1
            try:
                self.process(account, result)
            except ConfigurationError as exc:
                result.skipped += 1
                record_account_failure(self.name, "configuration")
                logger.warning("%s skipped %s: %s", self.name, account.account_number, exc)
            except UpstreamUnavailable as exc:
                result.failed += 1
                record_account_failure(self.name, "upstream")
                logger.error("%s failed for %s: %s", self.name, account.account_number, exc)
            except Exception:
                result.failed += 1
                record_account_failure(self.name, "error")
                logger.exception("%s failed for %s", self.name, account.account_number)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def _alert(
        self,
        account: FdAccount,
        alert_type: AlertType,
        message: str,
        details: str,
        customer_id: str | None = None,
    ) -> None:
        """Publish an account alert with best-effort contact details."""
        customer = customer_id or account.primary_customer_id
        email = phone = None
        if self._customers is not None:
            email, phone = self._customers.contact_for(customer)
        self._publisher.publish(TOPIC_ALERT, AccountAlertEvent(
            account_number=account.account_number,
            alert_type=alert_type,
            alert_message=message,
            customer_id=customer,
            customer_email=email,
            customer_phone=phone,
            details=details,
            timestamp=self._clock.now(),
        ))

    def _transaction_alert(
        self, account: FdAccount, txn: Transaction, message: str, extra: str = "",
    ) -> None:
        details = (
            f"Transaction Type: {txn.transaction_type.value}, Amount: {txn.amount}, "
            f"Date: {txn.transaction_date.isoformat()}, "
            f"Reference: {txn.transaction_reference}, "
        )
        if extra:
            details += f"{extra}, "
        details += f"Description: {txn.description}"
        self._alert(account, AlertType.ACCOUNT_MODIFIED, message, details)
