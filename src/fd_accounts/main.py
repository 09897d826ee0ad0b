"""Application bootstrap.

Wires settings into a :class:`Container` holding every collaborator (clock,
ledger, publisher, upstream clients, jobs, scheduler) and builds the ASGI
app whose lifespan starts and stops the scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .accounts.reports import ReportService
from .accounts.service import AccountService
from .accounts.statements import StatementBuilder
from .auth.tokens import JwtVerifier
from .core.clock import IClock, LogicalClock, create_clock
from .core.config import Settings, load_settings
from .jobs import (
    InterestAccrualJob,
    InterestPayoutJob,
    JobLauncher,
    MaturityProcessingJob,
    MonthlyStatementJob,
)
from .ledger.interfaces import Ledger
from .ledger.memory import InMemoryLedger
from .notify.publisher import EventPublisher, create_publisher
from .observability.logger import setup_logging
from .observability.metrics import start_metrics_server
from .scheduling.scheduler import TimeDrivenScheduler
from .scheduling.tracker import JobDispatchTracker
from .scheduling.triggers import default_triggers
from .upstream.calculation import CalculationClient
from .upstream.customer import CustomerClient
from .upstream.product import ProductClient

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    clock: IClock
    ledger: Ledger
    publisher: EventPublisher
    customers: CustomerClient
    products: ProductClient
    calculations: CalculationClient
    statements: StatementBuilder
    accounts: AccountService
    reports: ReportService
    launcher: JobLauncher
    tracker: JobDispatchTracker
    scheduler: TimeDrivenScheduler
    verifier: JwtVerifier

    @property
    def logical_clock(self) -> LogicalClock | None:
        return self.clock if isinstance(self.clock, LogicalClock) else None

    def close(self) -> None:
        self.customers.close()
        self.products.close()
        self.calculations.close()
        self.publisher.close()


def create_ledger(settings: Settings) -> Ledger:
    if settings.storage.backend == "sql":
        from .ledger.sql.connection import create_engine
        from .ledger.sql.repos import SqlLedger

        engine = create_engine(settings.storage.database_url, echo=settings.storage.echo)
        return SqlLedger(engine, create_tables=settings.storage.create_tables)
    return InMemoryLedger()


def build_container(
    settings: Settings,
    *,
    clock: IClock | None = None,
    ledger: Ledger | None = None,
    publisher: EventPublisher | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Container:
    """Assemble the application. Keyword arguments replace defaults (tests)."""
    settings.validate_production()

    clock = clock or create_clock(
        settings.clock.mode,
        settings.clock.timezone,
        anchor_hour=settings.clock.anchor_hour,
    )
    ledger = ledger or create_ledger(settings)
    publisher = publisher or create_publisher(settings.events)

    customers = CustomerClient.from_config(settings.services, transport)
    products = ProductClient.from_config(settings.services, transport)
    calculations = CalculationClient.from_config(settings.services, transport)

    statements = StatementBuilder(clock, ledger, publisher, customers, products)
    accounts = AccountService(
        clock, ledger, publisher, customers, products, calculations, statements,
        settings.maturity,
    )
    reports = ReportService(clock, ledger)

    page_size = settings.batch.page_size
    launcher = JobLauncher([
        InterestAccrualJob(clock, ledger, publisher, customers, page_size=page_size),
        InterestPayoutJob(clock, ledger, publisher, customers, page_size=page_size),
        MaturityProcessingJob(
            clock, ledger, publisher, customers,
            page_size=page_size, renewal_rate=settings.maturity.renewal_rate,
        ),
        MonthlyStatementJob(
            clock, ledger, publisher, customers,
            page_size=page_size, statements=statements,
        ),
    ])
    tracker = JobDispatchTracker()
    scheduler = TimeDrivenScheduler(
        clock, tracker, launcher, default_triggers(settings.scheduler),
        interval=settings.scheduler.tick_seconds,
    )

    return Container(
        settings=settings,
        clock=clock,
        ledger=ledger,
        publisher=publisher,
        customers=customers,
        products=products,
        calculations=calculations,
        statements=statements,
        accounts=accounts,
        reports=reports,
        launcher=launcher,
        tracker=tracker,
        scheduler=scheduler,
        verifier=JwtVerifier(settings.auth),
    )


def create_application(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
):
    """Load settings, set up logging and return the ASGI app."""
    from .api.app import create_app

    settings = load_settings(config_path=config_path, overrides=overrides)
    obs = settings.observability
    setup_logging(obs.log_level, obs.log_format)
    if obs.metrics_port:
        start_metrics_server(obs.metrics_port, mode=settings.mode.value)

    container = build_container(settings)
    logger.info(
        "Starting fd-accounts (mode=%s, clock=%s, storage=%s, events=%s)",
        settings.mode.value, settings.clock.mode.value,
        settings.storage.backend, settings.events.backend,
    )
    return create_app(container)
