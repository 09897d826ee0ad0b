"""Statement assembly.

Builds a :class:`StatementNotification` for one account and period: the
customer's profile, the account details, current balances, the period's
transactions with a running balance, and a body rendered from the product's
``COMM_MONTHLY_STATEMENT`` template (or the default one).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from ..core.clock import IClock
from ..core.enums import BalanceType, TransactionType
from ..core.errors import AccountNotFound, UpstreamUnavailable, ValidationError
from ..core.events import (
    TOPIC_STATEMENT,
    StatementAccountDetails,
    StatementBalances,
    StatementCustomerDetails,
    StatementNotification,
    StatementPeriod,
    StatementTransaction,
)
from ..core.models import CurrentBalances, FdAccount, Transaction
from ..ledger.interfaces import Ledger
from ..notify.publisher import EventPublisher
from ..upstream.customer import CustomerClient, CustomerProfile
from ..upstream.product import ProductClient

logger = logging.getLogger(__name__)

TEMPLATE_EVENT = "COMM_MONTHLY_STATEMENT"
DEFAULT_TEMPLATE = (
    "Dear ${CUSTOMER_NAME}, Your monthly statement for ${PRODUCT_NAME} account "
    "ending in ${LAST_4_DIGITS} is now available. Opening balance: "
    "${OPENING_BALANCE}, Closing balance: ${CLOSING_BALANCE}. "
    "View full statement in the attachment."
)

DEBIT_TYPES = frozenset({
    TransactionType.INTEREST_PAYOUT,
    TransactionType.PREMATURE_WITHDRAWAL,
    TransactionType.PENALTY_DEBIT,
    TransactionType.MATURITY_PAYOUT,
})


def previous_month(today: date) -> tuple[date, date]:
    """First and last day of the month before ``today``."""
    last = today.replace(day=1) - timedelta(days=1)
    return last.replace(day=1), last


def signed_amount(txn: Transaction) -> Decimal:
    return -txn.amount if txn.transaction_type in DEBIT_TYPES else txn.amount


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace each ``${KEY}`` with its value; unknown keys are left as-is."""
    out = template
    for key, value in values.items():
        out = out.replace("${" + key + "}", value)
    return out


class StatementBuilder:
    def __init__(
        self,
        clock: IClock,
        ledger: Ledger,
        publisher: EventPublisher,
        customers: CustomerClient,
        products: ProductClient,
    ) -> None:
        self._clock = clock
        self._ledger = ledger
        self._publisher = publisher
        self._customers = customers
        self._products = products

    def generate(
        self,
        account_number: str,
        start: date,
        end: date,
        *,
        email: str | None = None,
        token: str | None = None,
    ) -> StatementNotification:
        """Build and publish the statement for ``[start, end]`` (inclusive)."""
        if end < start:
            raise ValidationError(f"Statement end {end} is before start {start}")
        account = self._ledger.get_account(account_number)
        if account is None:
            raise AccountNotFound(account_number)

        profile = self._profile(account, email, token)
        notification = self.build(account, profile, start, end)
        self._publisher.publish(TOPIC_STATEMENT, notification)
        logger.info(
            "Statement for %s (%s..%s) published", account_number, start, end,
        )
        return notification

    def _profile(
        self, account: FdAccount, email: str | None, token: str | None,
    ) -> CustomerProfile:
        if email:
            profile = self._customers.profile_by_email(email, token)
        else:
            profile = self._customers.profile_by_customer_number(account.primary_customer_id)
        if profile is None:
            raise UpstreamUnavailable(
                "customer-service",
                f"no profile for account {account.account_number}",
            )
        return profile

    def build(
        self,
        account: FdAccount,
        profile: CustomerProfile,
        start: date,
        end: date,
    ) -> StatementNotification:
        tz = self._clock.tz
        period_start = datetime.combine(start, time.min, tzinfo=tz)
        period_end = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)

        prior = self._ledger.list_transactions(account.account_number, end=period_start)
        opening = sum((signed_amount(t) for t in prior), Decimal("0"))

        running = opening
        lines: list[StatementTransaction] = []
        for txn in self._ledger.list_transactions(
            account.account_number, start=period_start, end=period_end,
        ):
            amount = signed_amount(txn)
            running += amount
            lines.append(StatementTransaction(
                date=txn.transaction_date.astimezone(tz).date().isoformat(),
                description=txn.description or txn.transaction_type.value,
                debit=-amount if amount < 0 else Decimal("0"),
                credit=amount if amount > 0 else Decimal("0"),
                balance=running,
                reference=txn.transaction_reference,
            ))

        balances = self.current_balances(account.account_number)
        template = self._template(account.product_code)
        number = account.account_number
        body = render_template(template, {
            "CUSTOMER_NAME": profile.first_name,
            "PRODUCT_NAME": account.account_name,
            "LAST_4_DIGITS": number[-4:],
            "OPENING_BALANCE": str(opening),
            "CLOSING_BALANCE": str(balances.closing),
        })

        return StatementNotification(
            account_number=number,
            email=profile.email,
            phone_number=profile.phone_number,
            subject=f"Your Fixed Deposit Statement - A/c No. ...{number[-5:]}",
            body=body,
            pdf_file_name=f"FD_Statement_{number}_{end.year}-{end.month:02d}.pdf",
            period=StatementPeriod(start_date=start.isoformat(), end_date=end.isoformat()),
            customer=StatementCustomerDetails(
                customer_id=profile.customer_id,
                customer_number=profile.customer_number,
                first_name=profile.first_name,
                last_name=profile.last_name,
                phone_number=profile.phone_number,
                email=profile.email,
                address=profile.address(),
            ),
            account=StatementAccountDetails(
                account_number=number,
                account_name=account.account_name,
                status=account.status.value,
                currency=account.currency or "INR",
                principal_amount=account.principal_amount,
                maturity_amount=account.maturity_amount,
                effective_date=account.effective_date.isoformat(),
                maturity_date=account.maturity_date.isoformat(),
                tenure=(
                    f"{account.tenure_value} {account.tenure_unit}"
                    if account.tenure_value and account.tenure_unit else "N/A"
                ),
                interest_rate=account.interest_rate,
                apy=account.apy,
                interest_type=account.interest_type or "COMPOUND",
                compounding_frequency=account.compounding_frequency or "QUARTERLY",
            ),
            balances=StatementBalances(
                as_of=balances.as_of,
                principal=balances.principal,
                interest=balances.interest,
                penalty=balances.penalty,
            ),
            transactions=lines,
            timestamp=self._clock.now(),
        )

    def current_balances(self, account_number: str) -> CurrentBalances:
        view = CurrentBalances(as_of=self._clock.now())
        for bal in self._ledger.list_balances(account_number):
            if not bal.is_active:
                continue
            if bal.balance_type == BalanceType.FD_PRINCIPAL:
                view.principal = bal.amount
            elif bal.balance_type == BalanceType.FD_INTEREST:
                view.interest = bal.amount
            elif bal.balance_type == BalanceType.PENALTY:
                view.penalty = bal.amount
        return view

    def _template(self, product_code: str) -> str:
        try:
            template = self._products.template_for(product_code, TEMPLATE_EVENT)
        except UpstreamUnavailable as exc:
            logger.warning("Using default statement template for %s: %s", product_code, exc)
            return DEFAULT_TEMPLATE
        return template or DEFAULT_TEMPLATE
