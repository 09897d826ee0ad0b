"""Event schemas published to the notification broker.

All events inherit from BaseEvent and are Pydantic models. Producers pass
``timestamp`` from the injected clock so events carry logical time.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field

from .enums import AlertType
from .ids import new_id

# Topics
TOPIC_ACCOUNT_CREATED = "fd.account.created"
TOPIC_ACCOUNT_MATURED = "fd.account.matured"
TOPIC_ACCOUNT_CLOSED = "fd.account.closed"
TOPIC_STATEMENT = "statement"
TOPIC_ALERT = "alert"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """Base for all events. Provides identity and time."""

    event_id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=_now)

    @property
    def key(self) -> str:
        """Partition key; events of one account stay ordered."""
        return getattr(self, "account_number", self.event_id)


class AccountCreatedEvent(BaseEvent):
    account_number: str
    customer_id: str
    principal_amount: Decimal
    maturity_date: date


class AccountMaturedEvent(BaseEvent):
    account_number: str
    maturity_amount: Decimal
    maturity_date: date
    customer_ids_to_notify: list[str] = Field(default_factory=list)


class AccountClosedEvent(BaseEvent):
    account_number: str
    closure_type: str
    payout_amount: Decimal
    closure_date: date
    customer_ids_to_notify: list[str] = Field(default_factory=list)


class AccountAlertEvent(BaseEvent):
    account_number: str
    alert_type: AlertType
    alert_message: str
    customer_id: str
    customer_email: str | None = None
    customer_phone: str | None = None
    details: str = ""


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

class StatementPeriod(BaseModel):
    start_date: str
    end_date: str


class StatementAccountDetails(BaseModel):
    account_number: str
    account_name: str
    status: str
    currency: str
    principal_amount: Decimal
    maturity_amount: Decimal
    effective_date: str
    maturity_date: str
    tenure: str
    interest_rate: Decimal
    apy: Decimal | None = None
    interest_type: str
    compounding_frequency: str


class StatementCustomerDetails(BaseModel):
    customer_id: str | None = None
    customer_number: str | None = None
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = None
    email: str | None = None
    address: dict[str, str] = Field(default_factory=dict)


class StatementBalances(BaseModel):
    as_of: datetime
    principal: Decimal
    interest: Decimal
    penalty: Decimal


class StatementTransaction(BaseModel):
    date: str
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    reference: str


class StatementNotification(BaseEvent):
    account_number: str
    email: str | None = None
    phone_number: str | None = None
    subject: str
    body: str
    statement_type: str = "FD_STATEMENT"
    pdf_file_name: str
    period: StatementPeriod
    customer: StatementCustomerDetails
    account: StatementAccountDetails
    balances: StatementBalances
    transactions: list[StatementTransaction] = Field(default_factory=list)
