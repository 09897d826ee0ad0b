"""Ledger behaviour shared by the in-memory and SQL implementations."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fd_accounts.core.enums import AccountStatus, BalanceType, RoleType, TransactionType
from fd_accounts.core.errors import DuplicatePostingError
from fd_accounts.core.models import AccountHolder, FdAccount, Transaction
from fd_accounts.ledger.memory import InMemoryLedger
from fd_accounts.ledger.sql import SqlLedger
from fd_accounts.ledger.sql.connection import create_engine

T0 = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield InMemoryLedger()
        return
    engine = create_engine("sqlite://")
    yield SqlLedger(engine, create_tables=True)
    engine.dispose()


def _account(number: str, **overrides) -> FdAccount:
    data = dict(
        account_number=number,
        account_name="Retirement Fund",
        product_code="FD-STANDARD",
        interest_rate=Decimal("7.50"),
        principal_amount=Decimal("50000.00"),
        maturity_amount=Decimal("53750.00"),
        effective_date=date(2026, 1, 10),
        maturity_date=date(2027, 1, 10),
        compounding_frequency="QUARTERLY",
        created_at=T0,
        holders=[AccountHolder(customer_id="CUST-001")],
    )
    data.update(overrides)
    return FdAccount(**data)


def _txn(number: str, amount: str, when: datetime, key: str | None = None) -> Transaction:
    return Transaction(
        account_number=number,
        transaction_type=TransactionType.INTEREST_ACCRUAL,
        amount=Decimal(amount),
        transaction_date=when,
        idempotency_key=key,
    )


class TestAccounts:
    def test_save_and_get_round_trip(self, store):
        account = _account(
            "1010000001",
            holders=[
                AccountHolder(customer_id="CUST-001"),
                AccountHolder(customer_id="CUST-002", role_type=RoleType.NOMINEE,
                              ownership_percentage=Decimal("0.00")),
            ],
        )
        store.save_account(account)
        loaded = store.get_account("1010000001")
        assert loaded.account_name == "Retirement Fund"
        assert loaded.interest_rate == Decimal("7.50")
        assert loaded.created_at == T0
        assert [h.role_type for h in loaded.holders] == [RoleType.OWNER, RoleType.NOMINEE]
        assert store.account_number_exists("1010000001")
        assert not store.account_number_exists("1010000002")
        assert store.get_account("missing") is None

    def test_save_updates_in_place(self, store):
        store.save_account(_account("1010000001"))
        account = store.get_account("1010000001")
        account.status = AccountStatus.MATURED
        account.closed_at = T0 + timedelta(days=365)
        store.save_account(account)
        assert store.get_account("1010000001").status == AccountStatus.MATURED

    def test_iter_accounts_pages_and_filters(self, store):
        for i in range(7):
            store.save_account(_account(f"10100000{i:02d}"))
        store.save_account(_account("1010000099", status=AccountStatus.MATURED))

        numbers = [a.account_number for a in store.iter_accounts(page_size=3)]
        assert numbers == [f"10100000{i:02d}" for i in range(7)]

    def test_iter_accounts_tolerates_status_changes(self, store):
        for i in range(5):
            store.save_account(_account(f"10100000{i:02d}"))
        seen = []
        for account in store.iter_accounts(page_size=2):
            seen.append(account.account_number)
            account.status = AccountStatus.MATURED
            store.save_account(account)
        assert len(seen) == 5

    def test_iter_accounts_maturing(self, store):
        store.save_account(_account("1010000001", maturity_date=date(2026, 3, 1)))
        store.save_account(_account("1010000002", maturity_date=date(2026, 3, 2)))
        due = list(store.iter_accounts(maturing_on_or_before=date(2026, 3, 1)))
        assert [a.account_number for a in due] == ["1010000001"]

    def test_find_accounts(self, store):
        store.save_account(_account("1010000001"))
        store.save_account(_account(
            "1010000002", account_name="Child Education", product_code="FD-TEMPLATED",
            holders=[AccountHolder(customer_id="CUST-002")],
        ))
        assert [a.account_number for a in store.find_accounts(customer_id="CUST-002")] == [
            "1010000002",
        ]
        assert [a.account_number for a in store.find_accounts(name="education")] == [
            "1010000002",
        ]
        assert [a.account_number for a in store.find_accounts(product_code="FD-STANDARD")] == [
            "1010000001",
        ]

    def test_report_queries(self, store):
        closed_at = datetime(2026, 2, 5, 12, 0, tzinfo=timezone.utc)
        store.save_account(_account("1010000001", maturity_date=date(2026, 2, 20)))
        store.save_account(_account(
            "1010000002", status=AccountStatus.PREMATURELY_CLOSED, closed_at=closed_at,
        ))
        store.save_account(_account(
            "1010000003", status=AccountStatus.MATURED, closed_at=closed_at,
        ))

        maturing = store.accounts_maturing_between(date(2026, 2, 1), date(2026, 2, 28))
        assert [a.account_number for a in maturing] == ["1010000001"]

        created = store.accounts_created_between(T0 - timedelta(hours=1), T0 + timedelta(hours=1))
        assert len(created) == 3

        start = datetime(2026, 2, 1, tzinfo=timezone.utc)
        end = datetime(2026, 2, 28, tzinfo=timezone.utc)
        assert {a.account_number for a in store.accounts_closed_between(start, end)} == {
            "1010000002", "1010000003",
        }
        only = store.accounts_closed_between(start, end, [AccountStatus.MATURED])
        assert [a.account_number for a in only] == ["1010000003"]


class TestPostings:
    def test_record_posting_applies_deltas(self, store):
        store.save_account(_account("1010000001"))
        store.record_posting(_txn("1010000001", "100.00", T0), {BalanceType.FD_INTEREST: Decimal("100.00")})
        store.record_posting(_txn("1010000001", "40.00", T0), {BalanceType.FD_INTEREST: Decimal("-40.00")})
        assert store.get_balance("1010000001", BalanceType.FD_INTEREST) == Decimal("60.00")
        assert store.get_balance("1010000001", BalanceType.PENALTY) == Decimal("0")
        [balance] = store.list_balances("1010000001")
        assert balance.balance_type == BalanceType.FD_INTEREST

    def test_duplicate_key_rejected_without_side_effects(self, store):
        store.save_account(_account("1010000001"))
        store.record_posting(
            _txn("1010000001", "100.00", T0, key="k-1"), {BalanceType.FD_INTEREST: Decimal("100.00")},
        )
        with pytest.raises(DuplicatePostingError):
            store.record_posting(
                _txn("1010000001", "100.00", T0, key="k-1"),
                {BalanceType.FD_INTEREST: Decimal("100.00")},
            )
        assert store.has_posting("k-1")
        assert not store.has_posting("k-2")
        assert store.get_balance("1010000001", BalanceType.FD_INTEREST) == Decimal("100.00")
        assert len(store.list_transactions("1010000001")) == 1

    def test_list_transactions_window_is_half_open(self, store):
        store.save_account(_account("1010000001"))
        for day in (1, 2, 3):
            store.record_posting(_txn("1010000001", "1.00", datetime(2026, 2, day, tzinfo=timezone.utc)))
        rows = store.list_transactions(
            "1010000001",
            start=datetime(2026, 2, 2, tzinfo=timezone.utc),
            end=datetime(2026, 2, 3, tzinfo=timezone.utc),
        )
        assert [r.transaction_date.day for r in rows] == [2]
        assert [r.transaction_date.day for r in store.list_transactions("1010000001")] == [1, 2, 3]
