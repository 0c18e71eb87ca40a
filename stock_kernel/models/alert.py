"""
Module: stock_kernel.models.alert
Responsibility: ORM persistence for stock alerts and the alert settings
    singleton.
Architecture position: Kernel > Models.  Alerts are written only by
    stock_services.alert_lifecycle.AlertLifecycleManager; settings only by
    stock_kernel.services.settings_service.AlertSettingsService.

Invariants enforced:
    - At most one unresolved alert per item: partial unique index on
      item_id WHERE NOT resolved (PostgreSQL and SQLite both honor it), so
      create-if-absent is an atomic check-and-insert across processes.
    - notification_count >= 1.
    - alert_settings holds a single row.

Failure modes:
    - IntegrityError when a concurrent sweep already opened the alert for the
      same item.  AlertLifecycleManager treats that as "already exists".
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, TrackedBase
from stock_kernel.domain.clock import as_utc


class StockAlertModel(Base):
    """
    ORM model for a stock alert.

    Maps to: stock_kernel.domain.types.StockAlert (frozen dataclass).

    created_at is stamped from the injected Clock rather than the server so
    cooldown arithmetic stays deterministic in tests.
    """

    __tablename__ = "stock_alerts"

    __table_args__ = (
        Index(
            "uq_stock_alerts_open_item",
            "item_id",
            unique=True,
            sqlite_where=text("NOT resolved"),
            postgresql_where=text("NOT resolved"),
        ),
        Index("idx_stock_alert_resolved", "resolved"),
        Index("idx_stock_alert_created", "created_at"),
        CheckConstraint("notification_count >= 1", name="ck_stock_alert_notification_count"),
    )

    item_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_items.id"))
    alert_type: Mapped[str] = mapped_column(String(20))
    threshold_at_creation: Mapped[int] = mapped_column()
    quantity_at_alert: Mapped[int] = mapped_column()
    created_at: Mapped[datetime] = mapped_column()
    last_notified_at: Mapped[datetime] = mapped_column()
    notification_count: Mapped[int] = mapped_column(default=1)

    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen StockAlert DTO."""
        from stock_kernel.domain.types import AlertType, StockAlert

        return StockAlert(
            alert_id=self.id,
            item_id=self.item_id,
            alert_type=AlertType(self.alert_type),
            threshold_at_creation=self.threshold_at_creation,
            quantity_at_alert=self.quantity_at_alert,
            created_at=as_utc(self.created_at),
            last_notified_at=as_utc(self.last_notified_at),
            notification_count=self.notification_count,
            resolved=self.resolved,
            resolved_at=as_utc(self.resolved_at),
            resolved_by=self.resolved_by,
            resolution_notes=self.resolution_notes,
        )

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else "open"
        return (
            f"<StockAlertModel {self.id} item={self.item_id} "
            f"{self.alert_type} {state} count={self.notification_count}>"
        )


class AlertSettingsModel(TrackedBase):
    """
    ORM model for the process-wide alert settings row.

    Maps to: stock_kernel.domain.types.AlertSettings (frozen dataclass).
    Recipient lists are stored as JSON arrays.
    """

    __tablename__ = "alert_settings"

    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_by_email: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_by_sms: Mapped[bool] = mapped_column(Boolean, default=False)
    check_interval_minutes: Mapped[int] = mapped_column(default=360)
    cooldown_hours: Mapped[int] = mapped_column(default=24)
    recipient_emails: Mapped[list] = mapped_column(JSON, default=list)
    recipient_phones: Mapped[list] = mapped_column(JSON, default=list)

    def to_dto(self):
        """Convert ORM model to frozen AlertSettings DTO."""
        from stock_kernel.domain.types import AlertSettings

        return AlertSettings(
            enabled=self.enabled,
            notify_by_email=self.notify_by_email,
            notify_by_sms=self.notify_by_sms,
            check_interval_minutes=self.check_interval_minutes,
            cooldown_hours=self.cooldown_hours,
            recipient_emails=tuple(self.recipient_emails or ()),
            recipient_phones=tuple(self.recipient_phones or ()),
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID | None = None) -> "AlertSettingsModel":
        """Create ORM model from frozen AlertSettings DTO."""
        return cls(
            enabled=dto.enabled,
            notify_by_email=dto.notify_by_email,
            notify_by_sms=dto.notify_by_sms,
            check_interval_minutes=dto.check_interval_minutes,
            cooldown_hours=dto.cooldown_hours,
            recipient_emails=list(dto.recipient_emails),
            recipient_phones=list(dto.recipient_phones),
            created_by_id=created_by_id,
        )

    def apply(self, dto, updated_by_id: UUID | None = None) -> None:
        """Overwrite every settings column from ``dto``."""
        self.enabled = dto.enabled
        self.notify_by_email = dto.notify_by_email
        self.notify_by_sms = dto.notify_by_sms
        self.check_interval_minutes = dto.check_interval_minutes
        self.cooldown_hours = dto.cooldown_hours
        self.recipient_emails = list(dto.recipient_emails)
        self.recipient_phones = list(dto.recipient_phones)
        self.updated_by_id = updated_by_id

    def __repr__(self) -> str:
        return (
            f"<AlertSettingsModel enabled={self.enabled} "
            f"interval={self.check_interval_minutes}m cooldown={self.cooldown_hours}h>"
        )
