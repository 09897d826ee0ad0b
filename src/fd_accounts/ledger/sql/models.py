"""SQLAlchemy ORM models for the fixed-deposit ledger database.

Timestamps are stored in UTC. Money columns are ``Numeric(19, 2)``;
rates are ``Numeric(9, 4)``.

Relationships:
    AccountRecord 1--* HolderRecord
    AccountRecord 1--* BalanceRecord   (one row per balance type)
    AccountRecord 1--* TransactionRecord
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

MONEY = Numeric(19, 2)
RATE = Numeric(9, 4)


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# AccountRecord
# ---------------------------------------------------------------------------

class AccountRecord(Base):
    """Persisted fixed-deposit account.

    Maps from :class:`fd_accounts.core.models.FdAccount`. Status transitions
    update the row in place.
    """

    __tablename__ = "fd_accounts"

    account_number: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_code: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    term_in_months: Mapped[int] = mapped_column(Integer, nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    principal_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    maturity_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    maturity_date: Mapped[date] = mapped_column(Date, nullable=False)
    maturity_instruction: Mapped[str] = mapped_column(String(64), nullable=False)
    payout_account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)

    calc_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    result_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    apy: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    effective_rate: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    payout_freq: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payout_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    category1_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category2_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tenure_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tenure_unit: Mapped[str | None] = mapped_column(String(16), nullable=True)

    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="INR")
    interest_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    compounding_frequency: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    holders: Mapped[list[HolderRecord]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="HolderRecord.id",
    )

    __table_args__ = (
        Index("ix_fd_accounts_status", "status"),
        Index("ix_fd_accounts_status_maturity", "status", "maturity_date"),
        Index("ix_fd_accounts_created_at", "created_at"),
        Index("ix_fd_accounts_closed_at", "closed_at"),
    )

    def __repr__(self) -> str:
        return f"<AccountRecord {self.account_number} {self.status}>"


class HolderRecord(Base):
    __tablename__ = "fd_account_holders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_number: Mapped[str] = mapped_column(
        String(32), ForeignKey("fd_accounts.account_number"), nullable=False,
    )
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role_type: Mapped[str] = mapped_column(String(32), nullable=False)
    ownership_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    account: Mapped[AccountRecord] = relationship(back_populates="holders")

    __table_args__ = (
        Index("ix_fd_account_holders_customer", "customer_id"),
    )


# ---------------------------------------------------------------------------
# Ledger rows
# ---------------------------------------------------------------------------

class BalanceRecord(Base):
    __tablename__ = "fd_account_balances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_number: Mapped[str] = mapped_column(
        String(32), ForeignKey("fd_accounts.account_number"), nullable=False,
    )
    balance_type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("account_number", "balance_type", name="uq_fd_balance_type"),
    )


class TransactionRecord(Base):
    """Append-only posting.

    ``idempotency_key`` is unique; boundary postings carry one so a second
    attempt for the same account, date and frequency is rejected.
    """

    __tablename__ = "fd_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_number: Mapped[str] = mapped_column(
        String(32), ForeignKey("fd_accounts.account_number"), nullable=False,
    )
    transaction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    transaction_reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)

    __table_args__ = (
        Index("ix_fd_transactions_account_date", "account_number", "transaction_date"),
    )
