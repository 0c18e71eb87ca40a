"""
Module: stock_engines.classification
Responsibility:
    Classify an inventory item against its static low-stock threshold.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Untracked items (inactive, or missing quantity or threshold) are never
      classified.
    - The boundary is inclusive: stock == threshold is below threshold.
    - stock == 0 is OUT_OF_STOCK; any positive stock at or below the
      threshold is LOW_STOCK.

Failure modes:
    - ValueError for a negative stock quantity or threshold.  The monitor
      reports it as a per-item error rather than aborting the sweep.
"""

from __future__ import annotations

from stock_kernel.domain.types import AlertType, ClassifiedItem, InventoryItem


def severity(stock_quantity: int) -> AlertType:
    """OUT_OF_STOCK at zero, LOW_STOCK otherwise."""
    if stock_quantity < 0:
        raise ValueError(f"stock_quantity cannot be negative, got {stock_quantity}")
    return AlertType.OUT_OF_STOCK if stock_quantity == 0 else AlertType.LOW_STOCK


def classify(item: InventoryItem) -> ClassifiedItem | None:
    """
    Return a ClassifiedItem when ``item`` is tracked and at or below its
    threshold, else None.
    """
    if not item.tracking_enabled:
        return None
    if item.stock_quantity < 0:
        raise ValueError(
            f"Item {item.item_id} has negative stock_quantity {item.stock_quantity}"
        )
    if item.low_stock_threshold < 0:
        raise ValueError(
            f"Item {item.item_id} has negative low_stock_threshold "
            f"{item.low_stock_threshold}"
        )
    if item.stock_quantity > item.low_stock_threshold:
        return None
    return ClassifiedItem(item=item, alert_type=severity(item.stock_quantity))
