"""
stock_kernel.domain -- Pure types, value objects and the injectable clock.

ZERO I/O.  All types are frozen dataclasses.
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock, as_utc
from stock_kernel.domain.types import (
    AlertSettings,
    AlertType,
    ChangeType,
    ClassifiedItem,
    DeliveryResult,
    InventoryItem,
    ItemError,
    NotificationRequest,
    ProcessResult,
    ReorderPointResult,
    ReorderSuggestion,
    StockAlert,
    SweepResult,
    SweepRunResult,
    SweepRunStatus,
    SweepTrigger,
    UsageEvent,
    VelocityTrend,
    normalize_recipients,
)

__all__ = [
    "AlertSettings",
    "AlertType",
    "ChangeType",
    "ClassifiedItem",
    "Clock",
    "DeliveryResult",
    "DeterministicClock",
    "InventoryItem",
    "ItemError",
    "NotificationRequest",
    "ProcessResult",
    "ReorderPointResult",
    "ReorderSuggestion",
    "StockAlert",
    "SweepResult",
    "SweepRunResult",
    "SweepRunStatus",
    "SweepTrigger",
    "SystemClock",
    "UsageEvent",
    "VelocityTrend",
    "as_utc",
    "normalize_recipients",
]
