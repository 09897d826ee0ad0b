"""Account lifecycle operations behind the HTTP API."""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from ..core.clock import IClock
from ..core.config import MaturityConfig
from ..core.enums import (
    AccountStatus,
    AlertType,
    BalanceType,
    RoleType,
    SearchField,
    TransactionType,
)
from ..core.errors import (
    AccountNotFound,
    AccountStateError,
    DuplicatePostingError,
    ValidationError,
)
from ..core.events import (
    TOPIC_ACCOUNT_CLOSED,
    TOPIC_ACCOUNT_CREATED,
    TOPIC_ALERT,
    AccountAlertEvent,
    AccountClosedEvent,
    AccountCreatedEvent,
)
from ..core.ids import content_hash, random_account_number
from ..core.models import AccountHolder, CurrentBalances, FdAccount, Transaction, WithdrawalQuote
from ..interest.simple import accrued_simple, days_active, penalty_rate
from ..ledger.interfaces import Ledger
from ..notify.publisher import EventPublisher
from ..observability.metrics import record_posting
from ..upstream.calculation import CalculationClient, CalculationResult
from ..upstream.customer import CustomerClient
from ..upstream.product import ProductClient
from .statements import StatementBuilder

logger = logging.getLogger(__name__)

_MAX_NUMBER_ATTEMPTS = 20


def _term_months(calc: CalculationResult, default: int) -> int:
    if calc.tenure_value is None:
        return default
    unit = (calc.tenure_unit or "MONTHS").upper()
    if unit.startswith("YEAR"):
        return calc.tenure_value * 12
    if unit.startswith("DAY"):
        return max(1, round(calc.tenure_value / 30))
    return calc.tenure_value


class AccountService:
    def __init__(
        self,
        clock: IClock,
        ledger: Ledger,
        publisher: EventPublisher,
        customers: CustomerClient,
        products: ProductClient,
        calculations: CalculationClient,
        statements: StatementBuilder,
        maturity: MaturityConfig | None = None,
    ) -> None:
        self._clock = clock
        self._ledger = ledger
        self._publisher = publisher
        self._customers = customers
        self._products = products
        self._calculations = calculations
        self._statements = statements
        self._maturity = maturity or MaturityConfig()
        self._withdraw_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def new_account_number(self) -> str:
        for _ in range(_MAX_NUMBER_ATTEMPTS):
            number = random_account_number()
            if not self._ledger.account_number_exists(number):
                return number
        raise AccountStateError("Could not allocate a unique account number")

    def create_account(
        self, account_name: str, calc_id: int, customer_number: str,
    ) -> FdAccount:
        """Open a deposit from a stored calculation for ``customer_number``."""
        if not account_name or not account_name.strip():
            raise ValidationError("account_name is required")
        if calc_id <= 0:
            raise ValidationError("calc_id must be positive")

        calc = self._calculations.get_calculation(calc_id)
        if calc is None:
            raise ValidationError(f"Calculation not found: {calc_id}")
        if calc.principal_amount is None or calc.principal_amount <= 0:
            raise ValidationError(f"Calculation {calc_id} has no principal amount")

        product_code = calc.product_code or "FD-STANDARD"
        product = self._products.get_product(product_code)

        now = self._clock.now()
        today = now.date()
        term = _term_months(calc, self._maturity.default_term_months)
        rate = calc.interest_rate or calc.effective_rate or self._maturity.default_rate
        account = FdAccount(
            account_number=self.new_account_number(),
            account_name=account_name.strip(),
            product_code=product_code,
            status=AccountStatus.ACTIVE,
            term_in_months=term,
            interest_rate=rate,
            principal_amount=calc.principal_amount,
            maturity_amount=calc.maturity_value,
            effective_date=today,
            maturity_date=calc.maturity_date or today + relativedelta(months=term),
            calc_id=calc.calc_id,
            result_id=calc.result_id,
            apy=calc.apy,
            effective_rate=calc.effective_rate,
            payout_freq=calc.payout_freq,
            payout_amount=calc.payout_amount,
            category1_id=calc.category1_id,
            category2_id=calc.category2_id,
            tenure_value=calc.tenure_value,
            tenure_unit=calc.tenure_unit,
            currency=(product.currency if product and product.currency else "INR"),
            interest_type=product.interest_type if product else None,
            compounding_frequency=product.compounding_frequency if product else None,
            created_at=now,
            holders=[AccountHolder(customer_id=customer_number)],
        )
        self._ledger.save_account(account)
        self._ledger.record_posting(
            Transaction(
                account_number=account.account_number,
                transaction_type=TransactionType.PRINCIPAL_DEPOSIT,
                amount=account.principal_amount,
                transaction_date=now,
                description="Initial principal deposit.",
            ),
            {BalanceType.FD_PRINCIPAL: account.principal_amount},
        )
        record_posting(TransactionType.PRINCIPAL_DEPOSIT.value)
        logger.info(
            "Created FD account %s for customer %s (calc %s)",
            account.account_number, customer_number, calc_id,
        )

        self._publisher.publish(TOPIC_ACCOUNT_CREATED, AccountCreatedEvent(
            account_number=account.account_number,
            customer_id=customer_number,
            principal_amount=account.principal_amount,
            maturity_date=account.maturity_date,
            timestamp=now,
        ))
        self._publish_alert(
            account,
            AlertType.ACCOUNT_CREATED,
            f"FD account {account.account_number} created",
            f"Principal: {account.principal_amount}, "
            f"Maturity Date: {account.maturity_date.isoformat()}, "
            f"Maturity Amount: {account.maturity_amount}",
        )
        return account

    def customer_number_for(self, email: str, token: str | None = None) -> str:
        profile = self._customers.profile_by_email(email, token)
        if profile is None or not profile.customer_number:
            raise ValidationError(f"No customer profile for {email}")
        return profile.customer_number

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_account(self, account_number: str) -> FdAccount:
        account = self._ledger.get_account(account_number)
        if account is None:
            raise AccountNotFound(account_number)
        return account

    def search(self, id_type: str, value: str) -> list[FdAccount]:
        try:
            field = SearchField(id_type.strip().upper())
        except ValueError:
            raise ValidationError(f"Unsupported search idType: {id_type}") from None

        if field == SearchField.ACCOUNT_NUMBER:
            account = self._ledger.get_account(value)
            return [account] if account else []
        if field == SearchField.CUSTOMER_ID:
            return self._ledger.find_accounts(customer_id=value)
        if field == SearchField.ACCOUNT_NAME:
            return self._ledger.find_accounts(name=value)
        return self._ledger.find_accounts(product_code=value)

    def add_holder(
        self,
        account_number: str,
        customer_id: str,
        role_type: RoleType,
        ownership_percentage: Decimal | None = None,
    ) -> FdAccount:
        account = self.get_account(account_number)
        if any(
            h.customer_id == customer_id and h.role_type == role_type
            for h in account.holders
        ):
            raise AccountStateError(
                f"{customer_id} already holds role {role_type.value} on {account_number}"
            )
        account.holders.append(AccountHolder(
            customer_id=customer_id,
            role_type=role_type,
            ownership_percentage=ownership_percentage or Decimal("0.00"),
        ))
        account.updated_at = self._clock.now()
        self._ledger.save_account(account)
        logger.info("Added %s %s to %s", role_type.value, customer_id, account_number)
        self._publish_alert(
            account,
            AlertType.ACCOUNT_HOLDER_ADDED,
            f"{role_type.value} added to account {account_number}",
            f"Customer: {customer_id}, Role: {role_type.value}",
        )
        return account

    def transactions(self, account_number: str) -> list[Transaction]:
        """Newest first."""
        self.get_account(account_number)
        return list(reversed(self._ledger.list_transactions(account_number)))

    def balances(self, account_number: str) -> CurrentBalances:
        self.get_account(account_number)
        return self._statements.current_balances(account_number)

    # ------------------------------------------------------------------
    # Premature withdrawal
    # ------------------------------------------------------------------

    def withdrawal_inquiry(self, account_number: str) -> WithdrawalQuote:
        account = self.get_account(account_number)
        if account.status != AccountStatus.ACTIVE:
            raise AccountStateError("Inquiry can only be performed on ACTIVE accounts.")

        today = self._clock.today()
        days = days_active(account.effective_date, today)
        principal = account.principal_amount
        if days <= 0:
            return WithdrawalQuote(
                account_number=account_number,
                original_principal=principal,
                interest_accrued_to_date=Decimal("0.00"),
                penalty_amount=Decimal("0.00"),
                final_payout_amount=principal,
                inquiry_date=today,
            )

        original = accrued_simple(principal, account.interest_rate, days)
        penalized = accrued_simple(principal, penalty_rate(account.interest_rate), days)
        return WithdrawalQuote(
            account_number=account_number,
            original_principal=principal,
            interest_accrued_to_date=penalized,
            penalty_amount=original - penalized,
            final_payout_amount=principal + penalized,
            inquiry_date=today,
        )

    def withdraw(self, account_number: str, reason: str = "") -> FdAccount:
        """Close an ACTIVE deposit early.

        Both postings carry per-account idempotency keys, so a withdrawal that
        failed part-way can be retried without posting the penalty twice.
        """
        with self._withdraw_lock:
            quote = self.withdrawal_inquiry(account_number)
            account = self.get_account(account_number)
            now = self._clock.now()
            logger.info(
                "Premature withdrawal for %s (reason: %s)", account_number, reason or "-",
            )

            self._post_once(
                Transaction(
                    account_number=account_number,
                    transaction_type=TransactionType.PENALTY_DEBIT,
                    amount=quote.penalty_amount,
                    transaction_date=now,
                    description="Penalty for premature withdrawal.",
                    idempotency_key=content_hash("withdrawal-penalty", account_number),
                ),
                {BalanceType.PENALTY: quote.penalty_amount},
            )
            self._post_once(Transaction(
                account_number=account_number,
                transaction_type=TransactionType.PREMATURE_WITHDRAWAL,
                amount=quote.final_payout_amount,
                transaction_date=now,
                description="Premature withdrawal payout.",
                idempotency_key=content_hash("withdrawal-payout", account_number),
            ))

            account.status = AccountStatus.PREMATURELY_CLOSED
            account.closed_at = now
            account.updated_at = now
            self._ledger.save_account(account)

        self._publisher.publish(TOPIC_ACCOUNT_CLOSED, AccountClosedEvent(
            account_number=account_number,
            closure_type="PREMATURE_WITHDRAWAL",
            payout_amount=quote.final_payout_amount,
            closure_date=now.date(),
            customer_ids_to_notify=account.customer_ids,
            timestamp=now,
        ))
        self._publish_alert(
            account,
            AlertType.ACCOUNT_STATUS_CHANGED,
            f"Account {account_number} closed before maturity",
            f"Payout: {quote.final_payout_amount}, Penalty: {quote.penalty_amount}",
        )
        return account

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _publish_alert(
        self, account: FdAccount, alert_type: AlertType, message: str, details: str,
    ) -> None:
        customer = account.primary_customer_id
        email, phone = self._customers.contact_for(customer)
        self._publisher.publish(TOPIC_ALERT, AccountAlertEvent(
            account_number=account.account_number,
            alert_type=alert_type,
            alert_message=message,
            customer_id=customer,
            customer_email=email,
            customer_phone=phone,
            details=details,
            timestamp=self._clock.now(),
        ))

    def _post_once(
        self,
        transaction: Transaction,
        balance_changes: dict[BalanceType, Decimal] | None = None,
    ) -> None:
        try:
            self._ledger.record_posting(transaction, balance_changes)
        except DuplicatePostingError:
            logger.warning(
                "%s for %s already posted",
                transaction.transaction_type.value, transaction.account_number,
            )
            return
        record_posting(transaction.transaction_type.value)
