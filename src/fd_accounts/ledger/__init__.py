"""Account and ledger persistence."""

from .interfaces import Ledger
from .memory import InMemoryLedger

__all__ = ["Ledger", "InMemoryLedger"]
