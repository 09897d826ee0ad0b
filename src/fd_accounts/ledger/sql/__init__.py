"""SQLAlchemy-backed ledger."""

from .repos import SqlLedger

__all__ = ["SqlLedger"]
