"""Prometheus metrics.

Exposes batch-job, ledger and clock metrics for monitoring. The API serves
them at ``/metrics``; a standalone exporter can also be started.
"""

from __future__ import annotations

from datetime import timedelta

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

# ---------------------------------------------------------------------------
# System metrics
# ---------------------------------------------------------------------------

SYSTEM_INFO = Info("fd_accounts", "Fixed-deposit backend information")

CLOCK_OFFSET_SECONDS = Gauge(
    "fd_clock_offset_seconds",
    "Logical clock offset from wall time",
)

# ---------------------------------------------------------------------------
# Scheduler / job metrics
# ---------------------------------------------------------------------------

JOBS_FIRED = Counter(
    "fd_jobs_fired_total",
    "Batch job runs started",
    ["job", "source"],
)

JOB_FAILURES = Counter(
    "fd_job_failures_total",
    "Batch job runs that raised",
    ["job"],
)

JOB_DURATION = Histogram(
    "fd_job_duration_seconds",
    "Batch job wall-clock duration",
    ["job"],
    buckets=[0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0, 600.0],
)

ACCOUNT_FAILURES = Counter(
    "fd_job_account_failures_total",
    "Accounts skipped inside a job run because processing failed",
    ["job", "reason"],
)

# ---------------------------------------------------------------------------
# Ledger metrics
# ---------------------------------------------------------------------------

POSTINGS = Counter(
    "fd_postings_total",
    "Ledger postings recorded",
    ["transaction_type"],
)

DUPLICATE_POSTINGS_SKIPPED = Counter(
    "fd_duplicate_postings_skipped_total",
    "Postings skipped because their idempotency key was already recorded",
    ["transaction_type"],
)

EVENTS_PUBLISHED = Counter(
    "fd_events_published_total",
    "Notification events handed to the publisher",
    ["topic", "status"],
)


def start_metrics_server(port: int = 9090, mode: str = "unknown") -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({
        "version": "0.1.0",
        "mode": mode,
    })
    start_http_server(port)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def record_job_fired(job: str, source: str) -> None:
    JOBS_FIRED.labels(job=job, source=source).inc()


def record_job_failure(job: str) -> None:
    JOB_FAILURES.labels(job=job).inc()


def record_job_duration(job: str, seconds: float) -> None:
    JOB_DURATION.labels(job=job).observe(seconds)


def record_account_failure(job: str, reason: str) -> None:
    ACCOUNT_FAILURES.labels(job=job, reason=reason).inc()


def record_posting(transaction_type: str) -> None:
    POSTINGS.labels(transaction_type=transaction_type).inc()


def record_duplicate_posting(transaction_type: str) -> None:
    DUPLICATE_POSTINGS_SKIPPED.labels(transaction_type=transaction_type).inc()


def record_event(topic: str, ok: bool) -> None:
    EVENTS_PUBLISHED.labels(topic=topic, status="ok" if ok else "error").inc()


def update_clock_offset(offset: timedelta) -> None:
    CLOCK_OFFSET_SECONDS.set(offset.total_seconds())
