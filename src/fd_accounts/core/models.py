"""Core domain models used across the backend.

These are the canonical "truth models" for accounts and ledger state.
Both ledger implementations and the HTTP layer speak these same types.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .enums import (
    AccountStatus,
    BalanceType,
    MaturityInstruction,
    RoleType,
    TransactionType,
)
from .ids import new_id


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class AccountHolder(BaseModel):
    customer_id: str
    role_type: RoleType = RoleType.OWNER
    ownership_percentage: Decimal = Decimal("100.00")


class FdAccount(BaseModel):
    """A fixed-deposit account and its compounding context."""

    account_number: str
    account_name: str
    product_code: str
    status: AccountStatus = AccountStatus.ACTIVE
    term_in_months: int = 12
    interest_rate: Decimal  # Annual nominal rate in percent, e.g. 7.50
    principal_amount: Decimal
    maturity_amount: Decimal
    effective_date: date
    maturity_date: date
    maturity_instruction: MaturityInstruction = MaturityInstruction.PAYOUT_TO_LINKED_ACCOUNT
    payout_account_number: str | None = None

    # From the calculation service
    calc_id: int | None = None
    result_id: int | None = None
    apy: Decimal | None = None
    effective_rate: Decimal | None = None  # Annualised, percent
    payout_freq: str | None = None  # MONTHLY / QUARTERLY / YEARLY
    payout_amount: Decimal | None = None
    category1_id: str | None = None
    category2_id: str | None = None
    tenure_value: int | None = None
    tenure_unit: str | None = None

    # From the product service
    currency: str = "INR"
    interest_type: str | None = None  # SIMPLE / COMPOUND
    compounding_frequency: str | None = None

    created_at: datetime
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    holders: list[AccountHolder] = Field(default_factory=list)

    @property
    def rate_for_compounding(self) -> Decimal:
        """Effective rate when the calculation service supplied one."""
        return self.effective_rate if self.effective_rate is not None else self.interest_rate

    @property
    def primary_customer_id(self) -> str:
        return self.holders[0].customer_id if self.holders else "SYSTEM"

    @property
    def customer_ids(self) -> list[str]:
        return [h.customer_id for h in self.holders]


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Balance(BaseModel):
    account_number: str
    balance_type: BalanceType
    amount: Decimal = Decimal("0")
    is_active: bool = True
    updated_at: datetime | None = None


class Transaction(BaseModel):
    """A ledger posting.

    ``idempotency_key`` is set for postings that must never be applied
    twice (interest accrual and payout per account per boundary date).
    """

    account_number: str
    transaction_type: TransactionType
    amount: Decimal
    transaction_date: datetime
    description: str = ""
    transaction_reference: str = Field(default_factory=new_id)
    idempotency_key: str | None = None


# ---------------------------------------------------------------------------
# Views / derived results
# ---------------------------------------------------------------------------

class WithdrawalQuote(BaseModel):
    """Premature withdrawal inquiry result."""

    account_number: str
    original_principal: Decimal
    interest_accrued_to_date: Decimal
    penalty_amount: Decimal
    final_payout_amount: Decimal
    inquiry_date: date


class CurrentBalances(BaseModel):
    as_of: datetime
    principal: Decimal = Decimal("0")
    interest: Decimal = Decimal("0")
    penalty: Decimal = Decimal("0")

    @property
    def closing(self) -> Decimal:
        return self.principal + self.interest - self.penalty
