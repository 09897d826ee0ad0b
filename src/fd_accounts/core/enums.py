"""Enumerations used across the fixed-deposit backend."""

from enum import Enum


class Mode(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ClockMode(str, Enum):
    WALL = "wall"  # Real time, offset pinned at zero
    LOGICAL = "logical"  # Offset clock, mutable through the admin surface


class Frequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MATURED = "MATURED"
    PREMATURELY_CLOSED = "PREMATURELY_CLOSED"
    CLOSED = "CLOSED"


CLOSED_STATUSES = (
    AccountStatus.MATURED,
    AccountStatus.PREMATURELY_CLOSED,
    AccountStatus.CLOSED,
)


class MaturityInstruction(str, Enum):
    RENEW_PRINCIPAL_AND_INTEREST = "RENEW_PRINCIPAL_AND_INTEREST"
    PAYOUT_TO_LINKED_ACCOUNT = "PAYOUT_TO_LINKED_ACCOUNT"
    CLOSE = "CLOSE"


class RoleType(str, Enum):
    OWNER = "OWNER"
    CO_OWNER = "CO_OWNER"
    NOMINEE = "NOMINEE"
    GUARDIAN = "GUARDIAN"


class BalanceType(str, Enum):
    FD_PRINCIPAL = "FD_PRINCIPAL"
    FD_INTEREST = "FD_INTEREST"
    PENALTY = "PENALTY"


class TransactionType(str, Enum):
    PRINCIPAL_DEPOSIT = "PRINCIPAL_DEPOSIT"
    INTEREST_ACCRUAL = "INTEREST_ACCRUAL"  # Calculated, not paid out
    INTEREST_PAYOUT = "INTEREST_PAYOUT"  # Transferred to the customer
    INTEREST_CAPITALIZATION = "INTEREST_CAPITALIZATION"
    PREMATURE_WITHDRAWAL = "PREMATURE_WITHDRAWAL"
    PENALTY_DEBIT = "PENALTY_DEBIT"
    MATURITY_PAYOUT = "MATURITY_PAYOUT"
    RENEWAL_DEPOSIT = "RENEWAL_DEPOSIT"


class AlertType(str, Enum):
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ACCOUNT_MODIFIED = "ACCOUNT_MODIFIED"
    ACCOUNT_HOLDER_ADDED = "ACCOUNT_HOLDER_ADDED"
    ACCOUNT_STATUS_CHANGED = "ACCOUNT_STATUS_CHANGED"


class JobName(str, Enum):
    INTEREST_CALCULATION = "interest-calculation"
    INTEREST_PAYOUT = "interest-payout"
    MATURITY_PROCESSING = "maturity-processing"
    MONTHLY_STATEMENT = "monthly-statement"


class TriggerSource(str, Enum):
    SCHEDULER = "scheduler"
    MANUAL = "manual"


class SearchField(str, Enum):
    ACCOUNT_NUMBER = "ACCOUNT_NUMBER"
    CUSTOMER_ID = "CUSTOMER_ID"
    ACCOUNT_NAME = "ACCOUNT_NAME"
    PRODUCT_CODE = "PRODUCT_CODE"
