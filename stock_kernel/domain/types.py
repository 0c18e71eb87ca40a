"""
stock_kernel.domain.types -- Pure frozen dataclasses for the stock engine.

ZERO I/O.  Frozen dataclasses with enum fields and tuples for immutable
collections; ORM models convert to and from these via ``to_dto()`` /
``from_dto()``.

Invariants enforced:
    - An item is *tracked* iff it is active and both ``stock_quantity`` and
      ``low_stock_threshold`` are set.  Untracked items are invisible to the
      monitor and the reorder engine.
    - UsageEvent is immutable; corrections are new events.
    - AlertSettings validates its own ranges on construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.exceptions import InvalidSettingsError


# =============================================================================
# Enums
# =============================================================================


class ChangeType(str, Enum):
    """Why a stock quantity changed."""

    CONSUMPTION = "consumption"  # Sold / handed out -- the only depletion counted
    RECEIVED_SHIPMENT = "received_shipment"
    INVENTORY_COUNT = "inventory_count"  # Physical recount correction
    ADJUSTMENT = "adjustment"
    DAMAGE = "damage"
    OTHER = "other"


class AlertType(str, Enum):
    """Severity of a below-threshold condition."""

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


# =============================================================================
# Catalog
# =============================================================================


@dataclass(frozen=True)
class InventoryItem:
    """Snapshot of an inventory item as seen by the engine."""

    item_id: UUID
    name: str
    stock_quantity: int | None = None
    low_stock_threshold: int | None = None
    lead_time_days: int = 7
    safety_stock_multiplier: Decimal = Decimal("1.5")
    is_active: bool = True
    item_type: str | None = None
    # Cached reorder analytics (written by ReorderPointEngine.recalculate_all)
    reorder_point: int | None = None
    average_daily_usage: Decimal | None = None
    last_calculated_at: datetime | None = None

    @property
    def tracking_enabled(self) -> bool:
        return (
            self.is_active
            and self.stock_quantity is not None
            and self.low_stock_threshold is not None
        )


# =============================================================================
# Usage ledger
# =============================================================================


@dataclass(frozen=True)
class UsageEvent:
    """One append-only stock-quantity change."""

    event_id: UUID
    item_id: UUID
    quantity_change: int  # negative = depletion
    change_type: ChangeType
    quantity_after: int
    occurred_at: datetime
    notes: str | None = None
    changed_by: UUID | None = None

    @property
    def is_consumption(self) -> bool:
        return self.change_type == ChangeType.CONSUMPTION


# =============================================================================
# Alerts
# =============================================================================


@dataclass(frozen=True)
class StockAlert:
    """Immutable snapshot of a stock alert row."""

    alert_id: UUID
    item_id: UUID
    alert_type: AlertType
    threshold_at_creation: int
    quantity_at_alert: int
    created_at: datetime
    last_notified_at: datetime
    notification_count: int = 1
    resolved: bool = False
    resolved_at: datetime | None = None
    resolved_by: UUID | None = None
    resolution_notes: str | None = None


@dataclass(frozen=True)
class AlertSettings:
    """Process-wide alert configuration, read once per sweep."""

    enabled: bool = True
    notify_by_email: bool = True
    notify_by_sms: bool = False
    check_interval_minutes: int = 360
    cooldown_hours: int = 24
    recipient_emails: tuple[str, ...] = ()
    recipient_phones: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.check_interval_minutes < 1:
            raise InvalidSettingsError(
                "check_interval_minutes", "must be at least 1",
            )
        if self.cooldown_hours < 0:
            raise InvalidSettingsError("cooldown_hours", "cannot be negative")


@dataclass(frozen=True)
class ClassifiedItem:
    """A tracked item found at or below its static threshold."""

    item: InventoryItem
    alert_type: AlertType

    @property
    def item_id(self) -> UUID:
        return self.item.item_id

    @property
    def stock_quantity(self) -> int:
        return self.item.stock_quantity  # type: ignore[return-value]

    @property
    def low_stock_threshold(self) -> int:
        return self.item.low_stock_threshold  # type: ignore[return-value]


@dataclass(frozen=True)
class ItemError:
    """Per-item failure reported alongside aggregate counts."""

    item_id: UUID | None
    code: str
    message: str


@dataclass(frozen=True)
class SweepResult:
    """Result of StockLevelMonitor.sweep()."""

    checked: int
    below_threshold: tuple[ClassifiedItem, ...] = ()
    errors: tuple[ItemError, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one notification channel for one alert."""

    channel: str
    recipients: int
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class NotificationRequest:
    """An alert change waiting to be announced once its transaction commits."""

    alert: StockAlert
    item: InventoryItem


@dataclass(frozen=True)
class ProcessResult:
    """Result of AlertLifecycleManager.process()."""

    created: int = 0
    updated: int = 0
    notifications_requested: int = 0
    cooldown_skipped: int = 0
    concurrent_skipped: int = 0  # another sweep opened the alert first
    errors: tuple[ItemError, ...] = ()
    pending_notifications: tuple[NotificationRequest, ...] = ()
    deliveries: tuple[DeliveryResult, ...] = ()


# =============================================================================
# Reorder analytics
# =============================================================================


@dataclass(frozen=True)
class ReorderSuggestion:
    """Derived, never persisted.  Recomputed on demand."""

    item_id: UUID
    item_name: str
    current_stock: int
    daily_velocity: Decimal
    reorder_point: int
    suggested_reorder_quantity: int
    urgency_ratio: Decimal  # current_stock / reorder_point, lower = more urgent
    days_until_stockout: int | None = None
    confidence_score: int = 0


@dataclass(frozen=True)
class ReorderPointResult:
    """One row of ReorderPointEngine.recalculate_all()."""

    item_id: UUID
    reorder_point: int
    daily_velocity: Decimal


@dataclass(frozen=True)
class VelocityTrend:
    """Daily consumption velocity per trailing window, for trend display."""

    item_id: UUID
    rates: dict[int, Decimal] = field(default_factory=dict)

    def rate(self, window_days: int) -> Decimal:
        return self.rates[window_days]


# =============================================================================
# Sweep runs
# =============================================================================


class SweepTrigger(str, Enum):
    """What started a sweep run."""

    STARTUP = "startup"
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class SweepRunStatus(str, Enum):
    COMPLETED = "completed"
    DISABLED = "disabled"  # kill switch off; nothing evaluated
    FAILED = "failed"
    SKIPPED = "skipped"  # a run was already in flight


@dataclass(frozen=True)
class SweepRunResult:
    """One sweep -> process run, as reported by the scheduler or operator surface."""

    sweep_id: UUID
    trigger: SweepTrigger
    status: SweepRunStatus
    started_at: datetime
    completed_at: datetime | None = None
    sweep: SweepResult | None = None
    process: ProcessResult | None = None
    reorder_points_recalculated: int = 0
    error_code: str | None = None
    error: str | None = None

    @property
    def checked(self) -> int:
        return self.sweep.checked if self.sweep else 0

    @property
    def alerts_created(self) -> int:
        return self.process.created if self.process else 0

    @property
    def notifications_requested(self) -> int:
        return self.process.notifications_requested if self.process else 0


# =============================================================================
# Helpers
# =============================================================================


def normalize_recipients(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    """Split comma-separated input, trim entries and drop empty ones."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [p for v in value for p in str(v).split(",")]
    return tuple(p.strip() for p in parts if p.strip())
