"""Initial schema: accounts, holders, balances, transactions.

Revision ID: 001_initial
Revises: None
Create Date: 2026-01-01 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(19, 2)
RATE = sa.Numeric(9, 4)


def upgrade() -> None:
    # Accounts
    op.create_table(
        "fd_accounts",
        sa.Column("account_number", sa.String(32), primary_key=True),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("product_code", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("term_in_months", sa.Integer, nullable=False),
        sa.Column("interest_rate", RATE, nullable=False),
        sa.Column("principal_amount", MONEY, nullable=False),
        sa.Column("maturity_amount", MONEY, nullable=False),
        sa.Column("effective_date", sa.Date, nullable=False),
        sa.Column("maturity_date", sa.Date, nullable=False),
        sa.Column("maturity_instruction", sa.String(64), nullable=False),
        sa.Column("payout_account_number", sa.String(64), nullable=True),
        sa.Column("calc_id", sa.Integer, nullable=True),
        sa.Column("result_id", sa.Integer, nullable=True),
        sa.Column("apy", RATE, nullable=True),
        sa.Column("effective_rate", RATE, nullable=True),
        sa.Column("payout_freq", sa.String(32), nullable=True),
        sa.Column("payout_amount", MONEY, nullable=True),
        sa.Column("category1_id", sa.String(64), nullable=True),
        sa.Column("category2_id", sa.String(64), nullable=True),
        sa.Column("tenure_value", sa.Integer, nullable=True),
        sa.Column("tenure_unit", sa.String(16), nullable=True),
        sa.Column("currency", sa.String(8), nullable=False, server_default="INR"),
        sa.Column("interest_type", sa.String(32), nullable=True),
        sa.Column("compounding_frequency", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_fd_accounts_status", "fd_accounts", ["status"])
    op.create_index("ix_fd_accounts_status_maturity", "fd_accounts", ["status", "maturity_date"])
    op.create_index("ix_fd_accounts_created_at", "fd_accounts", ["created_at"])
    op.create_index("ix_fd_accounts_closed_at", "fd_accounts", ["closed_at"])

    # Holders
    op.create_table(
        "fd_account_holders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_number", sa.String(32),
            sa.ForeignKey("fd_accounts.account_number"), nullable=False,
        ),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("role_type", sa.String(32), nullable=False),
        sa.Column("ownership_percentage", sa.Numeric(5, 2), nullable=False),
    )
    op.create_index("ix_fd_account_holders_customer", "fd_account_holders", ["customer_id"])

    # Balances
    op.create_table(
        "fd_account_balances",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_number", sa.String(32),
            sa.ForeignKey("fd_accounts.account_number"), nullable=False,
        ),
        sa.Column("balance_type", sa.String(32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("account_number", "balance_type", name="uq_fd_balance_type"),
    )

    # Transactions (append-only)
    op.create_table(
        "fd_transactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_number", sa.String(32),
            sa.ForeignKey("fd_accounts.account_number"), nullable=False,
        ),
        sa.Column("transaction_type", sa.String(32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("transaction_reference", sa.String(64), nullable=False, unique=True),
        sa.Column("idempotency_key", sa.String(64), nullable=True, unique=True),
    )
    op.create_index(
        "ix_fd_transactions_account_date", "fd_transactions",
        ["account_number", "transaction_date"],
    )


def downgrade() -> None:
    op.drop_table("fd_transactions")
    op.drop_table("fd_account_balances")
    op.drop_table("fd_account_holders")
    op.drop_table("fd_accounts")
