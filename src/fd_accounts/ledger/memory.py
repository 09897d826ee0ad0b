"""In-process ledger for development and tests."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Mapping, Sequence

from ..core.enums import CLOSED_STATUSES, AccountStatus, BalanceType
from ..core.errors import DuplicatePostingError
from ..core.models import Balance, FdAccount, Transaction

logger = logging.getLogger(__name__)


class InMemoryLedger:
    """Thread-safe dict-backed ledger.

    Stored models are copied on the way in and on the way out, so callers
    never share mutable state with the ledger.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: dict[str, FdAccount] = {}
        self._balances: dict[tuple[str, BalanceType], Balance] = {}
        self._transactions: list[Transaction] = []
        self._keys: set[str] = set()

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
        last = ""
        while True:
            with self._lock:
                page = sorted(
                    (
                        a for n, a in self._accounts.items()
                        if n > last and a.status == status
                        and (
                            maturing_on_or_before is None
                            or a.maturity_date <= maturing_on_or_before
                        )
                    ),
                    key=lambda a: a.account_number,
                )[:page_size]
                page = [a.model_copy(deep=True) for a in page]
            if not page:
                return
            yield from page
            last = page[-1].account_number

    def get_account(self, account_number: str) -> FdAccount | None:
        with self._lock:
            account = self._accounts.get(account_number)
            return account.model_copy(deep=True) if account else None

    def save_account(self, account: FdAccount) -> FdAccount:
        with self._lock:
            self._accounts[account.account_number] = account.model_copy(deep=True)
        return account

    def account_number_exists(self, account_number: str) -> bool:
        with self._lock:
            return account_number in self._accounts

    def _select(self, keep) -> list[FdAccount]:
        with self._lock:
            return [
                a.model_copy(deep=True)
                for _, a in sorted(self._accounts.items())
                if keep(a)
            ]

    def find_accounts(
        self,
        *,
        customer_id: str | None = None,
        name: str | None = None,
        product_code: str | None = None,
    ) -> list[FdAccount]:
        needle = name.lower() if name else None

        def keep(a: FdAccount) -> bool:
            if customer_id is not None and customer_id not in a.customer_ids:
                return False
            if needle is not None and needle not in a.account_name.lower():
                return False
            if product_code is not None and a.product_code != product_code:
                return False
            return True

        return self._select(keep)

    def accounts_maturing_between(self, start: date, end: date) -> list[FdAccount]:
        return self._select(
            lambda a: a.status == AccountStatus.ACTIVE and start <= a.maturity_date <= end
        )

    def accounts_created_between(self, start: datetime, end: datetime) -> list[FdAccount]:
        return self._select(lambda a: start <= a.created_at <= end)

    def accounts_closed_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Sequence[AccountStatus] | None = None,
    ) -> list[FdAccount]:
        wanted = tuple(statuses) if statuses else CLOSED_STATUSES
        return self._select(
            lambda a: a.status in wanted
            and a.closed_at is not None
            and start <= a.closed_at <= end
        )

    # ------------------------------------------------------------------
    # Balances and postings
    # ------------------------------------------------------------------

    def get_balance(self, account_number: str, balance_type: BalanceType) -> Decimal:
        with self._lock:
            bal = self._balances.get((account_number, balance_type))
            return bal.amount if bal else Decimal("0")

    def list_balances(self, account_number: str) -> list[Balance]:
        with self._lock:
            return [
                b.model_copy()
                for (number, _), b in self._balances.items()
                if number == account_number
            ]

    def record_posting(
        self,
        transaction: Transaction,
        balance_changes: Mapping[BalanceType, Decimal] | None = None,
    ) -> Transaction:
        key = transaction.idempotency_key
        with self._lock:
            if key is not None and key in self._keys:
                raise DuplicatePostingError(key)
            for balance_type, delta in (balance_changes or {}).items():
                slot = (transaction.account_number, balance_type)
                current = self._balances.get(slot)
                amount = (current.amount if current else Decimal("0")) + delta
                self._balances[slot] = Balance(
                    account_number=transaction.account_number,
                    balance_type=balance_type,
                    amount=amount,
                    updated_at=transaction.transaction_date,
                )
            self._transactions.append(transaction.model_copy())
            if key is not None:
                self._keys.add(key)
        logger.debug(
            "Posted %s %s to %s",
            transaction.transaction_type.value, transaction.amount, transaction.account_number,
        )
        return transaction

    def has_posting(self, idempotency_key: str) -> bool:
        with self._lock:
            return idempotency_key in self._keys

    def list_transactions(
        self,
        account_number: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        with self._lock:
            rows = [
                t.model_copy()
                for t in self._transactions
                if t.account_number == account_number
                and (start is None or t.transaction_date >= start)
                and (end is None or t.transaction_date < end)
            ]
        rows.sort(key=lambda t: t.transaction_date)
        return rows
