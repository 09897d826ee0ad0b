"""Period-boundary detection and compound-interest arithmetic.

Boundaries are fixed calendar anchors (the 1st of a month, a quarter or a
year), never relative to the account's start date, except that no boundary
fires on or before the effective date itself.

All money math is ``Decimal``: rate components at 10 places, intermediate
totals at 4, posted amounts at 2, rounding half-up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..core.enums import Frequency
from ..core.errors import ConfigurationError
from ..core.ids import content_hash

logger = logging.getLogger(__name__)

RATE_SCALE = Decimal("0.0000000001")
INTERMEDIATE_SCALE = Decimal("0.0001")
MONEY_SCALE = Decimal("0.01")
ZERO = Decimal("0")

_PERIOD_DIVISOR = {
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.YEARLY: 1,
}

_QUARTER_MONTHS = frozenset({1, 4, 7, 10})


@dataclass(frozen=True)
class CompoundResult:
    """Outcome of compounding one period."""

    new_interest: Decimal
    delta: Decimal

    @property
    def postable(self) -> bool:
        return self.delta > ZERO


def money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_SCALE, rounding=ROUND_HALF_UP)


def parse_frequency(value: str | Frequency | None) -> Frequency | None:
    """Normalise an account's frequency setting.

    ``None`` or blank means "no frequency". An unrecognised value raises
    ``ConfigurationError`` so the caller can skip that account.
    """
    if value is None:
        return None
    if isinstance(value, Frequency):
        return value
    text = str(value).strip().upper()
    if not text:
        return None
    try:
        return Frequency(text)
    except ValueError:
        raise ConfigurationError(f"Unrecognised frequency: {value!r}") from None


def period_divisor(frequency: Frequency) -> int:
    return _PERIOD_DIVISOR[frequency]


def is_boundary(
    frequency: Frequency | str | None,
    effective_date: date,
    today: date,
) -> bool:
    """Whether ``today`` is a compounding/payout boundary for the frequency."""
    if today <= effective_date:
        return False

    try:
        freq = parse_frequency(frequency)
    except ConfigurationError:
        freq = None
    if freq is None:
        logger.warning("No boundary for frequency %r", frequency)
        return False

    if today.day != 1:
        return False
    if freq == Frequency.MONTHLY:
        return True
    if freq == Frequency.QUARTERLY:
        return today.month in _QUARTER_MONTHS
    return today.month == 1


def compound(
    current_interest: Decimal,
    principal: Decimal,
    effective_rate: Decimal,
    frequency: Frequency,
) -> CompoundResult:
    """Compound one period of interest on ``principal + current_interest``.

    >>> compound(Decimal("0"), Decimal("100000"), Decimal("12"), Frequency.QUARTERLY).delta
    Decimal('3000.00')
    """
    divisor = Decimal(period_divisor(frequency))
    rate_component = (effective_rate / (divisor * 100)).quantize(
        RATE_SCALE, rounding=ROUND_HALF_UP,
    )
    base = current_interest + principal
    new_total = ((1 + rate_component) * base).quantize(
        INTERMEDIATE_SCALE, rounding=ROUND_HALF_UP,
    )
    delta = money(new_total - base)
    return CompoundResult(new_interest=money(current_interest + delta), delta=delta)


def payout_amount(balance: Decimal) -> Decimal | None:
    """Amount to pay out at a payout boundary, or ``None`` if nothing is due."""
    if balance <= ZERO:
        return None
    return money(balance)


def posting_key(
    kind: str,
    account_number: str,
    boundary_date: date,
    frequency: Frequency,
) -> str:
    """Idempotency key for one boundary posting.

    The same account, boundary date, frequency and posting kind always map
    to the same key, however many times the job body runs that day.
    """
    return content_hash(kind, account_number, boundary_date.isoformat(), frequency.value)
