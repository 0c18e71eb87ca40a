"""
Module: stock_engines.velocity
Responsibility:
    Average daily consumption over a trailing window, and a 0-100
    confidence score for that figure.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is passed in;
    nothing here reads a clock.

Invariants enforced:
    - Only CONSUMPTION events count.  Restocks, recounts, adjustments and
      damage are ignored.
    - The divisor is always the full requested window, even when the item's
      history is shorter, so young items are under- rather than
      over-estimated.
    - Velocity is >= 0 and kept at full Decimal precision.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from stock_kernel.domain.types import UsageEvent

_ZERO = Decimal("0")
_SAMPLE_TARGET = Decimal("10")
_HALF = Decimal("50")


def _consumption_in_window(
    events: Iterable[UsageEvent],
    window_days: int,
    as_of: datetime,
) -> list[int]:
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")
    start = as_of - timedelta(days=window_days)
    return [
        abs(e.quantity_change)
        for e in events
        if e.is_consumption and start <= e.occurred_at <= as_of
    ]


def consumption_velocity(
    events: Iterable[UsageEvent],
    window_days: int,
    as_of: datetime,
) -> Decimal:
    """Units consumed per day over ``[as_of - window_days, as_of]``."""
    total = sum(_consumption_in_window(events, window_days, as_of))
    if total == 0:
        return _ZERO
    return Decimal(total) / Decimal(window_days)


def confidence_score(
    events: Iterable[UsageEvent],
    window_days: int,
    as_of: datetime,
) -> int:
    """
    How much to trust the window's velocity, 0-100.

    Up to 50 points for sample size (10 consumption events earn all 50) and
    up to 50 for consistency, losing 25 points per unit of coefficient of
    variation of the consumed amounts.  No events scores 0.
    """
    amounts = _consumption_in_window(events, window_days, as_of)
    if not amounts:
        return 0

    n = Decimal(len(amounts))
    sample_score = min(n / _SAMPLE_TARGET * _HALF, _HALF)

    mean = Decimal(sum(amounts)) / n
    if mean > 0:
        variance = sum((Decimal(a) - mean) ** 2 for a in amounts) / n
        cv = variance.sqrt() / mean
    else:
        cv = Decimal("1")
    consistency_score = max(_HALF - cv * Decimal("25"), _ZERO)

    total = (sample_score + consistency_score).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(int(total), 100)
