"""Integration test: logical-clock jumps drive the scheduled jobs.

Moves the logical clock through the admin-facing clock API, lets the
dispatcher tick, and checks the ledger and published events that result.
"""

from datetime import date
from decimal import Decimal

import pytest

from fd_accounts.core.enums import BalanceType, TransactionType, TriggerSource
from fd_accounts.core.events import TOPIC_STATEMENT
from fd_accounts.ledger.sql import SqlLedger
from fd_accounts.ledger.sql.connection import create_engine
from fd_accounts.main import build_container


def _interest(ledger, number: str) -> Decimal:
    return ledger.get_balance(number, BalanceType.FD_INTEREST)


class TestClockDrivenAccrual:
    """A jump onto a boundary date produces exactly one accrual."""

    def test_tick_on_boundary_posts_interest(self, container, make_account, ledger):
        account = make_account()
        container.logical_clock.set_absolute("2026-04-01T00:05:00Z")

        assert container.scheduler.tick() == ["interest-calculation"]
        assert _interest(ledger, account.account_number) == Decimal("3000.00")

    def test_manual_and_scheduled_runs_post_once(self, container, make_account, ledger):
        account = make_account()
        container.logical_clock.set_absolute("2026-04-01T00:05:00Z")

        manual = container.launcher.run("interest-calculation", source=TriggerSource.MANUAL)
        assert manual.posted == 1

        assert container.scheduler.tick() == ["interest-calculation"]
        accruals = [
            t for t in ledger.list_transactions(account.account_number)
            if t.transaction_type == TransactionType.INTEREST_ACCRUAL
        ]
        assert len(accruals) == 1
        assert _interest(ledger, account.account_number) == Decimal("3000.00")

    def test_payout_follows_accrual_in_same_hour(self, container, make_account, ledger):
        account = make_account(compounding_frequency="QUARTERLY", payout_freq="QUARTERLY")
        clock = container.logical_clock

        clock.set_absolute("2026-04-01T00:05:00Z")
        assert container.scheduler.tick() == ["interest-calculation"]
        clock.set_absolute("2026-04-01T00:35:00Z")
        assert container.scheduler.tick() == ["interest-payout"]

        types = [t.transaction_type for t in ledger.list_transactions(account.account_number)]
        assert types == [
            TransactionType.PRINCIPAL_DEPOSIT,
            TransactionType.INTEREST_ACCRUAL,
            TransactionType.INTEREST_PAYOUT,
        ]
        assert _interest(ledger, account.account_number) == Decimal("0.00")

    def test_multi_day_jump_skips_boundary(self, container, make_account, ledger):
        account = make_account()
        clock = container.logical_clock

        clock.set_absolute("2026-03-31T23:30:00Z")
        assert container.scheduler.tick() == []
        clock.set_absolute("2026-04-02T00:10:00Z")
        assert container.scheduler.tick() == ["interest-calculation"]

        assert _interest(ledger, account.account_number) == Decimal("0")
        assert container.tracker.last_fired("interest-calculation") == date(2026, 4, 2)


class TestClockDrivenStatements:
    def test_statement_window_covers_previous_month(self, container, make_account, publisher):
        account = make_account()
        container.logical_clock.set_absolute("2026-04-01T23:10:00Z")

        assert container.scheduler.tick() == ["monthly-statement"]
        [statement] = publisher.events(TOPIC_STATEMENT)
        assert statement.account_number == account.account_number
        assert statement.period.start_date == "2026-03-01"
        assert statement.period.end_date == "2026-03-31"


class TestSqlBackedPipeline:
    """The same flow against the SQLAlchemy ledger."""

    @pytest.fixture
    def sql_container(self, settings, logical_clock, publisher, transport):
        engine = create_engine("sqlite://")
        built = build_container(
            settings,
            clock=logical_clock,
            ledger=SqlLedger(engine, create_tables=True),
            publisher=publisher,
            transport=transport,
        )
        yield built
        built.close()
        engine.dispose()

    def test_create_then_accrue(self, sql_container):
        account = sql_container.accounts.create_account("Holiday", 42, "CUST-001")
        assert account.compounding_frequency == "QUARTERLY"

        sql_container.logical_clock.set_absolute("2026-04-01T00:05:00Z")
        assert sql_container.scheduler.tick() == ["interest-calculation"]
        sql_container.tracker.reset("interest-calculation")
        assert sql_container.scheduler.tick() == ["interest-calculation"]

        ledger = sql_container.ledger
        assert _interest(ledger, account.account_number) == Decimal("1927.50")
        balances = sql_container.accounts.balances(account.account_number)
        assert balances.closing == Decimal("101927.50")
