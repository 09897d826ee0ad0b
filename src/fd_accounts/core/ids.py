"""Canonical ID factories for the backend.

All modules import from here instead of defining local uuid helpers.

ID Categories
-------------
1. Internal IDs: UUID v4 strings (event_id, transaction_reference, trace_id)
2. Content-derived IDs: SHA256[:N] deterministic hashes (posting idempotency keys)
3. Account numbers: branch code + random digits + Luhn check digit
"""

from __future__ import annotations

import hashlib
import secrets
import uuid

BRANCH_CODE = "101"


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all internal entity IDs."""
    return str(uuid.uuid4())


def content_hash(*parts: str, length: int = 32) -> str:
    """Generate a deterministic SHA256-based ID from content strings.

    Use for idempotency keys. Concatenates all *parts* with ``':'``
    before hashing.
    """
    raw = ":".join(parts)
    return hashlib.sha256(raw.encode()).hexdigest()[:length]


def luhn_check_digit(number: str) -> int:
    """Check digit that makes ``number + digit`` pass the Luhn test."""
    total = 0
    double = True
    for ch in reversed(number):
        n = int(ch)
        if double:
            n *= 2
            if n > 9:
                n -= 9
        total += n
        double = not double
    return (10 - total % 10) % 10


def is_luhn_valid(number: str) -> bool:
    if not number.isdigit() or len(number) < 2:
        return False
    return luhn_check_digit(number[:-1]) == int(number[-1])


def random_account_number(branch_code: str = BRANCH_CODE) -> str:
    """Branch code + 6 random digits + Luhn check digit (10 digits total)."""
    base = branch_code + str(100_000 + secrets.randbelow(900_000))
    return base + str(luhn_check_digit(base))
