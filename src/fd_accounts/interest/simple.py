"""Simple-interest arithmetic for renewals and premature withdrawal."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from .boundary import MONEY_SCALE, RATE_SCALE, ZERO, money

PENALTY_RATE_REDUCTION = Decimal("1.00")
DAYS_IN_YEAR = Decimal("365")


def _scaled(value: Decimal) -> Decimal:
    return value.quantize(RATE_SCALE, rounding=ROUND_HALF_UP)


def maturity_amount(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """``P * (1 + r * t)`` with ``t`` in years, rounded to 2 places."""
    rate = _scaled(annual_rate / 100)
    years = _scaled(Decimal(term_months) / 12)
    return (principal + principal * rate * years).quantize(MONEY_SCALE, rounding=ROUND_HALF_UP)


def penalty_rate(annual_rate: Decimal) -> Decimal:
    """Annual rate after the premature-closure reduction, floored at zero."""
    return max(ZERO, annual_rate - PENALTY_RATE_REDUCTION)


def daily_rate(annual_rate: Decimal) -> Decimal:
    return _scaled(_scaled(annual_rate / 100) / DAYS_IN_YEAR)


def accrued_simple(principal: Decimal, annual_rate: Decimal, days: int) -> Decimal:
    return money(principal * daily_rate(annual_rate) * days)


def days_active(effective_date: date, on: date) -> int:
    return max(0, (on - effective_date).days)
