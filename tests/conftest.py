"""Shared fixtures for the fd-accounts test suite."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest

from fd_accounts.core.clock import LogicalClock
from fd_accounts.core.config import AuthConfig, SchedulerConfig, ServicesConfig, Settings
from fd_accounts.core.enums import (
    AccountStatus,
    BalanceType,
    MaturityInstruction,
    TransactionType,
)
from fd_accounts.core.errors import UpstreamUnavailable
from fd_accounts.core.models import AccountHolder, FdAccount, Transaction
from fd_accounts.ledger.memory import InMemoryLedger
from fd_accounts.notify.publisher import MemoryEventPublisher
from fd_accounts.upstream.customer import CustomerClient
from fd_accounts.upstream.product import ProductClient


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

class FakeWall:
    """Controllable stand-in for wall-clock time."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def tick(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def fake_wall() -> FakeWall:
    return FakeWall(datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def logical_clock(fake_wall) -> LogicalClock:
    """Logical clock over a frozen fake wall, so ``now()`` is exact."""
    return LogicalClock(timezone.utc, wall=fake_wall)


# ---------------------------------------------------------------------------
# Sibling services
# ---------------------------------------------------------------------------

PROFILES = {
    "CUST-001": {
        "customerId": "c-1",
        "customerNumber": "CUST-001",
        "email": "asha@example.com",
        "firstName": "Asha",
        "lastName": "Rao",
        "phoneNumber": "+91-9800000001",
        "addressLine1": "12 MG Road",
        "city": "Bengaluru",
        "country": "IN",
    },
    "CUST-002": {
        "customerId": "c-2",
        "customerNumber": "CUST-002",
        "email": "vikram@example.com",
        "firstName": "Vikram",
        "lastName": "Shah",
        "phoneNumber": "+91-9800000002",
    },
}

PRODUCTS = {
    "FD-STANDARD": {
        "productCode": "FD-STANDARD",
        "productName": "Standard Fixed Deposit",
        "currency": "INR",
        "interestType": "COMPOUND",
        "compoundingFrequency": "QUARTERLY",
    },
    "FD-TEMPLATED": {
        "productCode": "FD-TEMPLATED",
        "productName": "Templated Deposit",
        "currency": "INR",
        "interestType": "COMPOUND",
        "compoundingFrequency": "MONTHLY",
    },
}

TEMPLATES = {
    "FD-TEMPLATED": [
        {"commCode": "W1", "event": "WELCOME", "template": "Welcome ${CUSTOMER_NAME}"},
        {
            "commCode": "S1",
            "event": "COMM_MONTHLY_STATEMENT",
            "template": "Hi ${CUSTOMER_NAME}: ${OPENING_BALANCE} -> ${CLOSING_BALANCE}",
        },
    ],
}

CALCULATIONS = {
    42: {
        "calc_id": 42,
        "result_id": 420,
        "principal_amount": "100000.00",
        "interest_rate": "7.50",
        "effective_rate": "7.71",
        "apy": "7.71",
        "maturity_value": "107713.00",
        "maturity_date": "2027-01-15",
        "payout_freq": "QUARTERLY",
        "payout_amount": "1875.00",
        "product_code": "FD-STANDARD",
        "tenure_value": 12,
        "tenure_unit": "MONTHS",
        "category1_id": "RETAIL",
    },
    43: {
        "calc_id": 43,
        "maturity_value": "0",
        "maturity_date": "2027-01-15",
    },
}


def _json(data, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(data).encode(),
                          headers={"Content-Type": "application/json"})


def upstream_handler(request: httpx.Request) -> httpx.Response:
    """Routes requests for the customer, product and calculation services."""
    parts = [p for p in request.url.path.split("/") if p]

    if parts[:2] == ["api", "profiles"]:
        if parts[2] == "email":
            for profile in PROFILES.values():
                if profile["email"] == parts[3]:
                    return _json(profile)
        elif parts[2] == "customer-number" and parts[3] in PROFILES:
            return _json(PROFILES[parts[3]])
        elif parts[2] == "public" and parts[4] in PROFILES:
            profile = PROFILES[parts[4]]
            if parts[5] == "email":
                return _json({"email": profile["email"]})
            return _json({"phoneNumber": profile["phoneNumber"]})
        return httpx.Response(404)

    if parts[:2] == ["api", "products"] and parts[2] in PRODUCTS:
        if len(parts) == 4 and parts[3] == "communications":
            return _json({"content": TEMPLATES.get(parts[2], [])})
        return _json(PRODUCTS[parts[2]])

    if parts[:3] == ["api", "fd", "calculations"] and int(parts[3]) in CALCULATIONS:
        return _json(CALCULATIONS[int(parts[3])])

    return httpx.Response(404)


@pytest.fixture
def transport() -> httpx.MockTransport:
    return httpx.MockTransport(upstream_handler)


@pytest.fixture
def services_config() -> ServicesConfig:
    return ServicesConfig(max_retries=0, backoff_seconds=0.0)


@pytest.fixture
def customers(services_config, transport) -> CustomerClient:
    client = CustomerClient.from_config(services_config, transport)
    yield client
    client.close()


@pytest.fixture
def products(services_config, transport) -> ProductClient:
    client = ProductClient.from_config(services_config, transport)
    yield client
    client.close()


# ---------------------------------------------------------------------------
# Ledger / publisher
# ---------------------------------------------------------------------------

@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def publisher() -> MemoryEventPublisher:
    return MemoryEventPublisher()


@pytest.fixture
def make_account(ledger):
    """Factory that saves an ACTIVE account and posts its principal deposit."""
    counter = iter(range(1, 10_000))

    def _make(
        *,
        account_number: str | None = None,
        principal: str = "100000.00",
        rate: str = "12.00",
        effective_date: date = date(2025, 12, 20),
        maturity_date: date = date(2026, 12, 20),
        compounding_frequency: str | None = "QUARTERLY",
        payout_freq: str | None = None,
        customer_id: str = "CUST-001",
        product_code: str = "FD-STANDARD",
        instruction: MaturityInstruction = MaturityInstruction.PAYOUT_TO_LINKED_ACCOUNT,
        status: AccountStatus = AccountStatus.ACTIVE,
        account_name: str = "Savings Deposit",
    ) -> FdAccount:
        number = account_number or f"1010000{next(counter):03d}"
        created = datetime.combine(effective_date, datetime.min.time(), tzinfo=timezone.utc)
        account = FdAccount(
            account_number=number,
            account_name=account_name,
            product_code=product_code,
            status=status,
            term_in_months=12,
            interest_rate=Decimal(rate),
            principal_amount=Decimal(principal),
            maturity_amount=Decimal(principal) * Decimal("1.12"),
            effective_date=effective_date,
            maturity_date=maturity_date,
            maturity_instruction=instruction,
            compounding_frequency=compounding_frequency,
            payout_freq=payout_freq,
            created_at=created,
            holders=[AccountHolder(customer_id=customer_id)],
        )
        ledger.save_account(account)
        ledger.record_posting(
            Transaction(
                account_number=number,
                transaction_type=TransactionType.PRINCIPAL_DEPOSIT,
                amount=Decimal(principal),
                transaction_date=created,
                description="Initial principal deposit.",
            ),
            {BalanceType.FD_PRINCIPAL: Decimal(principal)},
        )
        return account

    return _make


@pytest.fixture
def fail_posting_once(ledger, monkeypatch):
    """Make the first ledger posting of a given type raise ``UpstreamUnavailable``.

    Returns the list of account numbers whose posting was failed.
    """
    def _arm(transaction_type: TransactionType) -> list[str]:
        failures: list[str] = []
        real = ledger.record_posting

        def record_posting(transaction, balance_changes=None):
            if transaction.transaction_type == transaction_type and not failures:
                failures.append(transaction.account_number)
                raise UpstreamUnavailable("ledger", "connection reset")
            return real(transaction, balance_changes)

        monkeypatch.setattr(ledger, "record_posting", record_posting)
        return failures

    return _arm


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    return Settings(
        auth=AuthConfig(enabled=True, shared_secret="test-secret"),
        scheduler=SchedulerConfig(enabled=False),
        services=ServicesConfig(max_retries=0, backoff_seconds=0.0),
    )


@pytest.fixture
def container(settings, logical_clock, ledger, publisher, transport):
    from fd_accounts.main import build_container

    built = build_container(
        settings,
        clock=logical_clock,
        ledger=ledger,
        publisher=publisher,
        transport=transport,
    )
    yield built
    built.close()
