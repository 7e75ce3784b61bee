"""
Time and date utilities for fleet scoring.

Key concepts:
  - All engine arithmetic uses timezone-aware UTC datetimes.
  - "Days since" (cleaning age) is floored; "days until" (certificate
    expiry) is ceiled, so a certificate expiring later today still reads as
    "expires in 1 day".
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

_SECONDS_PER_DAY = 86_400


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_since(earlier: datetime, now: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``now`` (floored).

    Args:
        earlier: Past timestamp (e.g. last cleaning).
        now: Reference timestamp.

    Returns:
        ``floor((now - earlier) / 1 day)``. Negative if ``earlier`` is in
        the future.
    """
    elapsed = (ensure_utc(now) - ensure_utc(earlier)).total_seconds()
    return math.floor(elapsed / _SECONDS_PER_DAY)


def days_since_ceil(earlier: datetime, now: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``now``, rounded up."""
    elapsed = (ensure_utc(now) - ensure_utc(earlier)).total_seconds()
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def days_until(later: datetime, now: datetime) -> int:
    """Whole days remaining from ``now`` to ``later`` (ceiled).

    Returns:
        ``ceil((later - now) / 1 day)``. Zero or negative once ``later``
        has passed.
    """
    remaining = (ensure_utc(later) - ensure_utc(now)).total_seconds()
    return math.ceil(remaining / _SECONDS_PER_DAY)


def round_half_up(value: float) -> int:
    """Round a non-negative value to the nearest integer, halves going up.

    Python's ``round()`` uses banker's rounding (``round(2.5) == 2``); fleet
    percentages are reported with the half-up convention instead.
    """
    return math.floor(value + 0.5)
