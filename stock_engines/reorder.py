"""
Module: stock_engines.reorder
Responsibility:
    Reorder point, suggested reorder quantity, urgency ranking and days
    until stockout.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - reorder_point = ceil(velocity * lead_time_days * safety_stock_multiplier).
      Always rounded UP; under-ordering is the costlier error.
    - suggested quantity = max(0, reorder_point * coverage_cycles - stock).
    - Suggestions only for tracked items with reorder_point > 0 and
      stock <= reorder_point, ranked by ascending stock / reorder_point.

Failure modes:
    - ValueError on negative inputs, or urgency for a zero reorder point.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from stock_engines.tracer import traced_engine
from stock_kernel.domain.types import InventoryItem, ReorderSuggestion


@traced_engine(
    "reorder_point",
    "1.0",
    fingerprint_fields=("daily_velocity", "lead_time_days", "safety_stock_multiplier"),
)
def calculate_reorder_point(
    daily_velocity: Decimal,
    lead_time_days: int,
    safety_stock_multiplier: Decimal,
) -> int:
    """
    Reorder point in whole units.

    Example: 2.1/day, 10 days lead time, 1.5 multiplier -> 31.5 -> 32.
    """
    if daily_velocity < 0:
        raise ValueError(f"daily_velocity must be non-negative, got {daily_velocity}")
    if lead_time_days < 0:
        raise ValueError(f"lead_time_days must be non-negative, got {lead_time_days}")
    if safety_stock_multiplier < 0:
        raise ValueError(
            f"safety_stock_multiplier must be non-negative, got {safety_stock_multiplier}"
        )
    raw = Decimal(daily_velocity) * lead_time_days * Decimal(safety_stock_multiplier)
    return int(raw.to_integral_value(rounding=ROUND_CEILING))


def suggested_reorder_quantity(
    reorder_point: int,
    current_stock: int,
    coverage_cycles: int = 2,
) -> int:
    """Units to order to reach ``coverage_cycles`` reorder points; never negative."""
    return max(0, reorder_point * coverage_cycles - current_stock)


def urgency_ratio(current_stock: int, reorder_point: int) -> Decimal:
    """current_stock / reorder_point.  Lower is more urgent."""
    if reorder_point <= 0:
        raise ValueError(f"reorder_point must be positive, got {reorder_point}")
    return Decimal(current_stock) / Decimal(reorder_point)


def days_until_stockout(current_stock: int, daily_velocity: Decimal) -> int | None:
    """Whole days of stock left at the current velocity; None when velocity is 0."""
    if daily_velocity <= 0:
        return None
    days = Decimal(current_stock) / Decimal(daily_velocity)
    return int(days.to_integral_value(rounding=ROUND_FLOOR))


def build_suggestion(
    item: InventoryItem,
    daily_velocity: Decimal,
    reorder_point: int,
    confidence: int = 0,
    coverage_cycles: int = 2,
) -> ReorderSuggestion | None:
    """A ReorderSuggestion for ``item``, or None when it does not need one."""
    if not item.tracking_enabled or reorder_point <= 0:
        return None
    stock = item.stock_quantity
    if stock > reorder_point:
        return None
    return ReorderSuggestion(
        item_id=item.item_id,
        item_name=item.name,
        current_stock=stock,
        daily_velocity=daily_velocity,
        reorder_point=reorder_point,
        suggested_reorder_quantity=suggested_reorder_quantity(
            reorder_point, stock, coverage_cycles,
        ),
        urgency_ratio=urgency_ratio(stock, reorder_point),
        days_until_stockout=days_until_stockout(stock, daily_velocity),
        confidence_score=confidence,
    )


def rank_suggestions(suggestions: Iterable[ReorderSuggestion]) -> list[ReorderSuggestion]:
    """Most urgent first; ties broken by name for a stable order."""
    return sorted(suggestions, key=lambda s: (s.urgency_ratio, s.item_name))
