"""Ledger protocol shared by the in-memory and SQL implementations.

Balances are changed only through ``record_posting``, which appends a
transaction and applies its balance deltas as one atomic unit.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Mapping, Protocol, Sequence

from ..core.enums import AccountStatus, BalanceType
from ..core.models import Balance, FdAccount, Transaction


class Ledger(Protocol):
    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def iter_accounts(
        self,
        status: AccountStatus = AccountStatus.ACTIVE,
        *,
        page_size: int = 100,
        maturing_on_or_before: date | None = None,
    ) -> Iterator[FdAccount]:
        """Yield accounts in ``status`` page by page, ordered by number."""
        ...

    def get_account(self, account_number: str) -> FdAccount | None:
        ...

    def save_account(self, account: FdAccount) -> FdAccount:
        """Insert or replace an account together with its holders."""
        ...

    def account_number_exists(self, account_number: str) -> bool:
        ...

    def find_accounts(
        self,
        *,
        customer_id: str | None = None,
        name: str | None = None,
        product_code: str | None = None,
    ) -> list[FdAccount]:
        """Accounts held by a customer, or whose name contains ``name``."""
        ...

    def accounts_maturing_between(self, start: date, end: date) -> list[FdAccount]:
        ...

    def accounts_created_between(self, start: datetime, end: datetime) -> list[FdAccount]:
        ...

    def accounts_closed_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Sequence[AccountStatus] | None = None,
    ) -> list[FdAccount]:
        ...

    # ------------------------------------------------------------------
    # Balances and postings
    # ------------------------------------------------------------------

    def get_balance(self, account_number: str, balance_type: BalanceType) -> Decimal:
        ...

    def list_balances(self, account_number: str) -> list[Balance]:
        ...

    def record_posting(
        self,
        transaction: Transaction,
        balance_changes: Mapping[BalanceType, Decimal] | None = None,
    ) -> Transaction:
        """Append ``transaction`` and add each delta to its named balance.

        Raises ``DuplicatePostingError`` if the transaction carries an
        idempotency key that is already recorded; nothing is written then.
        """
        ...

    def has_posting(self, idempotency_key: str) -> bool:
        ...

    def list_transactions(
        self,
        account_number: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        """Transactions oldest first, optionally limited to ``[start, end)``."""
        ...
