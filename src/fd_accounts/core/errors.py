"""Custom exception hierarchy for the fixed-deposit backend."""


class FdAccountsError(Exception):
    """Base exception for all fixed-deposit backend errors."""


# --- Input ---
class ValidationError(FdAccountsError):
    """Malformed caller input (bad timestamp, bad date, bad request field)."""


# --- Configuration ---
class ConfigurationError(FdAccountsError):
    """Invalid or missing configuration, including per-account settings."""


class SafetyGateError(ConfigurationError):
    """Logical clock requested in a production deployment."""


# --- Collaborators ---
class UpstreamUnavailable(FdAccountsError):
    """A sibling service, the ledger or the event broker is unreachable."""

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"{service} unavailable: {reason}")


# --- Accounts ---
class AccountError(FdAccountsError):
    """Account lifecycle error."""


class AccountNotFound(AccountError):
    """No account with the requested number."""

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account not found: {account_number}")


class AccountStateError(AccountError):
    """Operation not allowed for the account's current status."""


# --- Ledger ---
class LedgerError(FdAccountsError):
    """Ledger read/write failure."""


class DuplicatePostingError(LedgerError):
    """A posting with the same idempotency key already exists."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Posting already recorded: {key}")


# --- Auth ---
class AuthenticationError(FdAccountsError):
    """Missing, expired or otherwise invalid bearer token."""


# --- Jobs ---
class UnknownJobError(FdAccountsError):
    """No batch job registered under the requested name."""
