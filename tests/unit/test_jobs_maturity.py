"""Maturity processing job."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fd_accounts.core.enums import (
    AccountStatus,
    AlertType,
    BalanceType,
    MaturityInstruction,
    TransactionType,
)
from fd_accounts.core.events import TOPIC_ACCOUNT_MATURED, TOPIC_ALERT
from fd_accounts.jobs import MaturityProcessingJob

NOW = datetime(2026, 3, 1, 1, 5, tzinfo=timezone.utc)


@pytest.fixture
def job(logical_clock, ledger, publisher, customers) -> MaturityProcessingJob:
    logical_clock.set_absolute(NOW)
    return MaturityProcessingJob(
        logical_clock, ledger, publisher, customers, renewal_rate=Decimal("6.50"),
    )


def test_matures_due_accounts(job, ledger, publisher, make_account):
    due = make_account(maturity_date=date(2026, 3, 1))
    overdue = make_account(maturity_date=date(2026, 2, 10))
    later = make_account(maturity_date=date(2026, 3, 2))

    result = job.run()

    assert (result.examined, result.posted) == (2, 2)
    for number in (due.account_number, overdue.account_number):
        stored = ledger.get_account(number)
        assert stored.status == AccountStatus.MATURED
        assert stored.closed_at == NOW
    assert ledger.get_account(later.account_number).status == AccountStatus.ACTIVE

    matured = publisher.events(TOPIC_ACCOUNT_MATURED)
    assert {e.account_number for e in matured} == {due.account_number, overdue.account_number}
    assert matured[0].customer_ids_to_notify == ["CUST-001"]
    alerts = publisher.events(TOPIC_ALERT)
    assert all(a.alert_type == AlertType.ACCOUNT_STATUS_CHANGED for a in alerts)


def test_closed_accounts_are_left_alone(job, ledger, make_account):
    closed = make_account(
        maturity_date=date(2026, 2, 1), status=AccountStatus.PREMATURELY_CLOSED,
    )
    result = job.run()
    assert result.examined == 0
    assert ledger.get_account(closed.account_number).status == AccountStatus.PREMATURELY_CLOSED


def test_second_run_finds_nothing(job, make_account):
    make_account(maturity_date=date(2026, 3, 1))
    job.run()
    assert job.run().examined == 0


def test_renewal_creates_new_deposit(job, ledger, publisher, make_account):
    original = make_account(
        maturity_date=date(2026, 3, 1),
        instruction=MaturityInstruction.RENEW_PRINCIPAL_AND_INTEREST,
    )

    result = job.run()

    assert result.details["renewed"] == 1
    renewed = ledger.get_account(original.account_number + "-R")
    assert renewed is not None
    assert renewed.status == AccountStatus.ACTIVE
    assert renewed.principal_amount == Decimal("112000.00")
    assert renewed.interest_rate == Decimal("6.50")
    assert renewed.maturity_amount == Decimal("119280.00")
    assert renewed.effective_date == date(2026, 3, 1)
    assert renewed.maturity_date == date(2027, 3, 1)
    assert renewed.customer_ids == ["CUST-001"]

    [deposit] = ledger.list_transactions(renewed.account_number)
    assert deposit.transaction_type == TransactionType.RENEWAL_DEPOSIT
    assert ledger.get_balance(renewed.account_number, BalanceType.FD_PRINCIPAL) == Decimal("112000")

    created = [a for a in publisher.events(TOPIC_ALERT) if a.alert_type == AlertType.ACCOUNT_CREATED]
    assert created[0].account_number == renewed.account_number


def test_existing_renewal_is_not_duplicated(job, ledger, make_account):
    original = make_account(
        maturity_date=date(2026, 3, 1),
        instruction=MaturityInstruction.RENEW_PRINCIPAL_AND_INTEREST,
    )
    make_account(
        account_number=original.account_number + "-R",
        maturity_date=date(2027, 3, 1),
    )

    result = job.run()

    assert result.details["renewed"] == 0
    assert ledger.get_account(original.account_number).status == AccountStatus.MATURED


def test_interrupted_renewal_is_completed_on_rerun(job, ledger, make_account, fail_posting_once):
    original = make_account(
        maturity_date=date(2026, 3, 1),
        instruction=MaturityInstruction.RENEW_PRINCIPAL_AND_INTEREST,
    )
    number = original.account_number + "-R"
    failures = fail_posting_once(TransactionType.RENEWAL_DEPOSIT)

    first = job.run()
    assert first.failed == 1
    assert failures == [number]
    assert ledger.get_account(original.account_number).status == AccountStatus.ACTIVE
    assert ledger.list_transactions(number) == []

    second = job.run()
    assert second.details["renewed"] == 1
    assert ledger.get_account(original.account_number).status == AccountStatus.MATURED
    [deposit] = ledger.list_transactions(number)
    assert deposit.transaction_type == TransactionType.RENEWAL_DEPOSIT
    assert ledger.get_balance(number, BalanceType.FD_PRINCIPAL) == Decimal("112000.00")

    assert job.run().examined == 0
