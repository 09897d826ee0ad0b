"""SQL ledger built on the ORM models.

Conversion helpers translate between core domain models
(:mod:`fd_accounts.core.models`) and ORM records. Datetimes are normalised
to UTC on the way in and re-tagged as UTC on the way out, since SQLite
drops the offset.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterator, Mapping, Sequence

from sqlalchemy import Engine, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...core.enums import (
    CLOSED_STATUSES,
    AccountStatus,
    BalanceType,
    MaturityInstruction,
    RoleType,
    TransactionType,
)
from ...core.errors import DuplicatePostingError, UpstreamUnavailable
from ...core.models import AccountHolder, Balance, FdAccount, Transaction
from .connection import create_all, make_session_factory, session_scope
from .models import AccountRecord, BalanceRecord, HolderRecord, TransactionRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _apply_account(record: AccountRecord, account: FdAccount) -> None:
    """Copy every scalar field of ``account`` onto ``record``."""
    record.account_name = account.account_name
    record.product_code = account.product_code
    record.status = account.status.value
    record.term_in_months = account.term_in_months
    record.interest_rate = account.interest_rate
    record.principal_amount = account.principal_amount
    record.maturity_amount = account.maturity_amount
    record.effective_date = account.effective_date
    record.maturity_date = account.maturity_date
    record.maturity_instruction = account.maturity_instruction.value
    record.payout_account_number = account.payout_account_number
    record.calc_id = account.calc_id
    record.result_id = account.result_id
    record.apy = account.apy
    record.effective_rate = account.effective_rate
    record.payout_freq = account.payout_freq
    record.payout_amount = account.payout_amount
    record.category1_id = account.category1_id
    record.category2_id = account.category2_id
    record.tenure_value = account.tenure_value
    record.tenure_unit = account.tenure_unit
    record.currency = account.currency
    record.interest_type = account.interest_type
    record.compounding_frequency = account.compounding_frequency
    record.created_at = _to_utc(account.created_at)
    record.updated_at = _to_utc(account.updated_at)
    record.closed_at = _to_utc(account.closed_at)
    record.holders = [
        HolderRecord(
            customer_id=h.customer_id,
            role_type=h.role_type.value,
            ownership_percentage=h.ownership_percentage,
        )
        for h in account.holders
    ]


def _record_to_account(record: AccountRecord) -> FdAccount:
    return FdAccount(
        account_number=record.account_number,
        account_name=record.account_name,
        product_code=record.product_code,
        status=AccountStatus(record.status),
        term_in_months=record.term_in_months,
        interest_rate=record.interest_rate,
        principal_amount=record.principal_amount,
        maturity_amount=record.maturity_amount,
        effective_date=record.effective_date,
        maturity_date=record.maturity_date,
        maturity_instruction=MaturityInstruction(record.maturity_instruction),
        payout_account_number=record.payout_account_number,
        calc_id=record.calc_id,
        result_id=record.result_id,
        apy=record.apy,
        effective_rate=record.effective_rate,
        payout_freq=record.payout_freq,
        payout_amount=record.payout_amount,
        category1_id=record.category1_id,
        category2_id=record.category2_id,
        tenure_value=record.tenure_value,
        tenure_unit=record.tenure_unit,
        currency=record.currency,
        interest_type=record.interest_type,
        compounding_frequency=record.compounding_frequency,
        created_at=_from_db(record.created_at),
        updated_at=_from_db(record.updated_at),
        closed_at=_from_db(record.closed_at),
        holders=[
            AccountHolder(
                customer_id=h.customer_id,
                role_type=RoleType(h.role_type),
                ownership_percentage=h.ownership_percentage,
            )
            for h in record.holders
        ],
    )


def _record_to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        account_number=record.account_number,
        transaction_type=TransactionType(record.transaction_type),
        amount=record.amount,
        transaction_date=_from_db(record.transaction_date),
        description=record.description,
        transaction_reference=record.transaction_reference,
        idempotency_key=record.idempotency_key,
    )


def _record_to_balance(record: BalanceRecord) -> Balance:
    return Balance(
        account_number=record.account_number,
        balance_type=BalanceType(record.balance_type),
        amount=record.amount,
        is_active=record.is_active,
        updated_at=_from_db(record.updated_at),
    )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class SqlLedger:
    """Ledger persisted through SQLAlchemy.

    Database errors other than an idempotency-key collision surface as
    ``UpstreamUnavailable("ledger", ...)`` so batch jobs can isolate them
    per account.
    """

    def __init__(self, engine: Engine, *, create_tables: bool = False) -> None:
        self._engine = engine
        self._factory = make_session_factory(engine)
        self._write_lock = threading.Lock()
        if create_tables:
            create_all(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _session(self):
        return session_scope(self._factory)

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
            stmt = (
                select(AccountRecord)
                .where(AccountRecord.status == status.value)
                .where(AccountRecord.account_number > last)
                .order_by(AccountRecord.account_number)
                .limit(page_size)
            )
            if maturing_on_or_before is not None:
                stmt = stmt.where(AccountRecord.maturity_date <= maturing_on_or_before)
            page = self._fetch_accounts(stmt)
            if not page:
                return
            yield from page
            last = page[-1].account_number

    def _fetch_accounts(self, stmt) -> list[FdAccount]:
        try:
            with self._session() as session:
                return [_record_to_account(r) for r in session.scalars(stmt).unique()]
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable("ledger", str(exc)) from exc

    def get_account(self, account_number: str) -> FdAccount | None:
        rows = self._fetch_accounts(
            select(AccountRecord).where(AccountRecord.account_number == account_number)
        )
        return rows[0] if rows else None

    def save_account(self, account: FdAccount) -> FdAccount:
        try:
            with self._write_lock, self._session() as session:
                record = session.get(AccountRecord, account.account_number)
                if record is None:
                    record = AccountRecord(account_number=account.account_number)
                    session.add(record)
                _apply_account(record, account)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable("ledger", str(exc)) from exc
        return account

    def account_number_exists(self, account_number: str) -> bool:
        stmt = select(exists().where(AccountRecord.account_number == account_number))
        with self._session() as session:
            return bool(session.scalar(stmt))

    def find_accounts(
        self,
        *,
        customer_id: str | None = None,
        name: str | None = None,
        product_code: str | None = None,
    ) -> list[FdAccount]:
        stmt = select(AccountRecord).order_by(AccountRecord.account_number)
        if customer_id is not None:
            stmt = stmt.join(HolderRecord).where(HolderRecord.customer_id == customer_id)
        if name is not None:
            stmt = stmt.where(AccountRecord.account_name.ilike(f"%{name}%"))
        if product_code is not None:
            stmt = stmt.where(AccountRecord.product_code == product_code)
        return self._fetch_accounts(stmt)

    def accounts_maturing_between(self, start: date, end: date) -> list[FdAccount]:
        stmt = (
            select(AccountRecord)
            .where(AccountRecord.status == AccountStatus.ACTIVE.value)
            .where(AccountRecord.maturity_date.between(start, end))
            .order_by(AccountRecord.maturity_date, AccountRecord.account_number)
        )
        return self._fetch_accounts(stmt)

    def accounts_created_between(self, start: datetime, end: datetime) -> list[FdAccount]:
        stmt = (
            select(AccountRecord)
            .where(AccountRecord.created_at.between(_to_utc(start), _to_utc(end)))
            .order_by(AccountRecord.created_at)
        )
        return self._fetch_accounts(stmt)

    def accounts_closed_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Sequence[AccountStatus] | None = None,
    ) -> list[FdAccount]:
        wanted = [s.value for s in (statuses or CLOSED_STATUSES)]
        stmt = (
            select(AccountRecord)
            .where(AccountRecord.status.in_(wanted))
            .where(AccountRecord.closed_at.between(_to_utc(start), _to_utc(end)))
            .order_by(AccountRecord.closed_at)
        )
        return self._fetch_accounts(stmt)

    # ------------------------------------------------------------------
    # Balances and postings
    # ------------------------------------------------------------------

    def get_balance(self, account_number: str, balance_type: BalanceType) -> Decimal:
        stmt = select(BalanceRecord.amount).where(
            BalanceRecord.account_number == account_number,
            BalanceRecord.balance_type == balance_type.value,
        )
        try:
            with self._session() as session:
                amount = session.scalar(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable("ledger", str(exc)) from exc
        return amount if amount is not None else Decimal("0")

    def list_balances(self, account_number: str) -> list[Balance]:
        stmt = (
            select(BalanceRecord)
            .where(BalanceRecord.account_number == account_number)
            .order_by(BalanceRecord.id)
        )
        with self._session() as session:
            return [_record_to_balance(r) for r in session.scalars(stmt)]

    def record_posting(
        self,
        transaction: Transaction,
        balance_changes: Mapping[BalanceType, Decimal] | None = None,
    ) -> Transaction:
        key = transaction.idempotency_key
        when = _to_utc(transaction.transaction_date)
        try:
            with self._write_lock, self._session() as session:
                if key is not None and session.scalar(
                    select(exists().where(TransactionRecord.idempotency_key == key))
                ):
                    raise DuplicatePostingError(key)

                for balance_type, delta in (balance_changes or {}).items():
                    record = session.scalars(
                        select(BalanceRecord)
                        .where(
                            BalanceRecord.account_number == transaction.account_number,
                            BalanceRecord.balance_type == balance_type.value,
                        )
                        .with_for_update()
                    ).first()
                    if record is None:
                        session.add(BalanceRecord(
                            account_number=transaction.account_number,
                            balance_type=balance_type.value,
                            amount=delta,
                            is_active=True,
                            created_at=when,
                            updated_at=when,
                        ))
                    else:
                        record.amount = record.amount + delta
                        record.updated_at = when

                session.add(TransactionRecord(
                    account_number=transaction.account_number,
                    transaction_type=transaction.transaction_type.value,
                    amount=transaction.amount,
                    transaction_date=when,
                    description=transaction.description,
                    transaction_reference=transaction.transaction_reference,
                    idempotency_key=key,
                ))
        except IntegrityError as exc:
            if key is not None and self.has_posting(key):
                raise DuplicatePostingError(key) from exc
            raise UpstreamUnavailable("ledger", str(exc)) from exc
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable("ledger", str(exc)) from exc
        return transaction

    def has_posting(self, idempotency_key: str) -> bool:
        stmt = select(exists().where(TransactionRecord.idempotency_key == idempotency_key))
        with self._session() as session:
            return bool(session.scalar(stmt))

    def list_transactions(
        self,
        account_number: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Transaction]:
        stmt = select(TransactionRecord).where(
            TransactionRecord.account_number == account_number,
        )
        if start is not None:
            stmt = stmt.where(TransactionRecord.transaction_date >= _to_utc(start))
        if end is not None:
            stmt = stmt.where(TransactionRecord.transaction_date < _to_utc(end))
        stmt = stmt.order_by(TransactionRecord.transaction_date, TransactionRecord.id)
        with self._session() as session:
            return [_record_to_transaction(r) for r in session.scalars(stmt)]
