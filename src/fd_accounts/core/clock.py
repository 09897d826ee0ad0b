"""Clock abstraction for logical, mutable business time.

WallClock: real wall-clock time (production)
LogicalClock: wall-clock time plus an adjustable offset (development, staging)

Business logic never calls datetime.now() directly; it is handed an IClock.

The logical clock *runs*: after ``set_absolute(T)`` the next ``now()`` is
roughly ``T`` and keeps advancing with real time from there. Only the offset
between wall time and logical time is stored, so nothing is frozen.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .enums import ClockMode
from .errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)
_HEADROOM = timedelta(days=1)


def _utc_wall() -> datetime:
    return datetime.now(timezone.utc)


class IClock(Protocol):
    """Clock interface used by all time-dependent code."""

    @property
    def tz(self) -> tzinfo:
        """Reference time zone for calendar projections."""
        ...

    @property
    def offset(self) -> timedelta:
        """Difference between logical time and wall time."""
        ...

    def now(self) -> datetime:
        """Current logical time as a timezone-aware datetime in ``tz``."""
        ...

    def today(self) -> date:
        """Current logical calendar date in ``tz``."""
        ...

    def now_ms(self) -> int:
        """Current logical time as milliseconds since epoch."""
        ...


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def resolve_timezone(name: str) -> tzinfo:
    """Map a zone name (``"UTC"``, ``"Asia/Kolkata"``) to a tzinfo."""
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone: {name!r}") from exc


def parse_instant(text: str, tz: tzinfo = timezone.utc) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are read in ``tz``."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Timestamp must be a non-empty ISO-8601 string")
    raw = text.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid timestamp {text!r}. Use ISO-8601, e.g. '2026-01-31T23:00:00Z'"
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_date(text: str) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date."""
    if not isinstance(text, str):
        raise ValidationError("Date must be a YYYY-MM-DD string")
    try:
        return datetime.strptime(text.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError(
            f"Invalid date {text!r}. Use YYYY-MM-DD, e.g. '2026-01-31'"
        ) from exc


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class WallClock:
    """Real wall-clock time. Used in production; the offset is always zero."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self._tz = tz

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def offset(self) -> timedelta:
        return _ZERO

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)


class LogicalClock:
    """Offset clock for development and staging.

    Parameters
    ----------
    tz:
        Reference time zone used for ``now()`` and ``today()``.
    anchor_hour:
        Hour of day used by ``set_date`` so a date jump never lands close
        to a midnight that time-zone rounding could push onto a neighbour.
    wall:
        Source of wall time (timezone-aware). Injected by tests.
    """

    def __init__(
        self,
        tz: tzinfo = timezone.utc,
        *,
        anchor_hour: int = 12,
        wall: Callable[[], datetime] | None = None,
    ) -> None:
        if not 0 <= anchor_hour <= 23:
            raise ConfigurationError(f"anchor_hour must be 0-23, got {anchor_hour}")
        self._tz = tz
        self._anchor_hour = anchor_hour
        self._wall = wall or _utc_wall
        self._offset = _ZERO
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def offset(self) -> timedelta:
        with self._lock:
            return self._offset

    def now(self) -> datetime:
        with self._lock:
            offset = self._offset
        return (self._wall() + offset).astimezone(self._tz)

    def today(self) -> date:
        return self.now().date()

    def now_ms(self) -> int:
        return int(self.now().timestamp() * 1000)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _checked_offset(self, candidate: timedelta) -> timedelta:
        """Return ``candidate`` if ``now()`` stays representable with it.

        The clock keeps running after a mutation, so a day of headroom above
        the result is required as well. Call with ``_lock`` held.
        """
        try:
            moved = self._wall() + candidate
            moved.astimezone(self._tz)
            (moved + _HEADROOM).astimezone(self._tz)
        except OverflowError as exc:
            raise ValidationError(
                f"Logical time out of range (offset {candidate})"
            ) from exc
        return candidate

    def set_absolute(self, when: datetime | str) -> datetime:
        """Move logical time to ``when``; the clock keeps running from there."""
        target = parse_instant(when, self._tz) if isinstance(when, str) else when
        if target.tzinfo is None:
            target = target.replace(tzinfo=self._tz)
        with self._lock:
            previous = self._offset
            self._offset = self._checked_offset(target - self._wall())
            current = self._offset
        logger.warning(
            "Logical time set to %s (offset %s -> %s)",
            target.isoformat(), previous, current,
        )
        return target.astimezone(self._tz)

    def set_date(self, day: date | str) -> datetime:
        """Move logical time to ``day`` at the anchor hour in ``tz``."""
        target_day = parse_date(day) if isinstance(day, str) else day
        anchored = datetime.combine(
            target_day, time(hour=self._anchor_hour), tzinfo=self._tz,
        )
        return self.set_absolute(anchored)

    def advance(self, delta: timedelta) -> datetime:
        """Shift logical time by ``delta`` (negative moves backwards)."""
        with self._lock:
            try:
                candidate = self._offset + delta
            except OverflowError as exc:
                raise ValidationError(f"Cannot advance by {delta}: out of range") from exc
            self._offset = self._checked_offset(candidate)
            offset = self._offset
        logger.warning("Logical time advanced by %s (offset now %s)", delta, offset)
        return self.now()

    def advance_by(self, *, days: int = 0, hours: int = 0, minutes: int = 0) -> datetime:
        try:
            delta = timedelta(days=days, hours=hours, minutes=minutes)
        except OverflowError as exc:
            raise ValidationError(
                f"Cannot advance by {days}d {hours}h {minutes}m: out of range"
            ) from exc
        return self.advance(delta)

    def reset(self) -> datetime:
        """Drop the offset; logical time equals wall time again."""
        with self._lock:
            self._offset = _ZERO
        logger.warning("Logical time reset to wall time")
        return self.now()


def create_clock(
    mode: ClockMode,
    tz_name: str = "UTC",
    *,
    anchor_hour: int = 12,
) -> WallClock | LogicalClock:
    """Build the clock for a deployment mode."""
    tz = resolve_timezone(tz_name)
    if mode == ClockMode.WALL:
        logger.info("Using wall clock (tz=%s)", tz_name)
        return WallClock(tz)
    logger.warning(
        "Using LOGICAL clock (tz=%s); time control endpoints are enabled", tz_name,
    )
    return LogicalClock(tz, anchor_hour=anchor_hour)
