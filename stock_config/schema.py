"""
Configuration schema (``stock_config.schema``).

Frozen dataclasses produced by ``stock_config.loader``.  Every field has the
documented default, so an empty YAML document yields a working
configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from stock_kernel.domain.types import AlertSettings


@dataclass(frozen=True)
class AlertDefaults:
    """Seed values for the stored AlertSettings row when none exists yet."""

    enabled: bool = True
    notify_by_email: bool = True
    notify_by_sms: bool = False
    check_interval_minutes: int = 360
    cooldown_hours: int = 24
    recipient_emails: tuple[str, ...] = ()
    recipient_phones: tuple[str, ...] = ()

    def to_settings(self) -> AlertSettings:
        return AlertSettings(
            enabled=self.enabled,
            notify_by_email=self.notify_by_email,
            notify_by_sms=self.notify_by_sms,
            check_interval_minutes=self.check_interval_minutes,
            cooldown_hours=self.cooldown_hours,
            recipient_emails=self.recipient_emails,
            recipient_phones=self.recipient_phones,
        )


@dataclass(frozen=True)
class ReorderDefaults:
    """Reorder analytics parameters."""

    velocity_window_days: int = 30
    trend_windows: tuple[int, ...] = (30, 60, 90)
    default_lead_time_days: int = 7
    default_safety_stock_multiplier: Decimal = Decimal("1.5")
    coverage_cycles: int = 2
    usage_history_days: int = 90


@dataclass(frozen=True)
class SchedulerDefaults:
    """Background sweep scheduling."""

    startup_delay_seconds: float = 60
    recalculate_reorder_points: bool = True
    stop_timeout_seconds: float = 30


@dataclass(frozen=True)
class NotificationDefaults:
    channel_timeout_seconds: float = 10


@dataclass(frozen=True)
class EngineConfig:
    """Complete runtime configuration for the stock alert engine."""

    alerts: AlertDefaults = field(default_factory=AlertDefaults)
    reorder: ReorderDefaults = field(default_factory=ReorderDefaults)
    scheduler: SchedulerDefaults = field(default_factory=SchedulerDefaults)
    notifications: NotificationDefaults = field(default_factory=NotificationDefaults)
    database_url: str = "sqlite:///stock_engine.db"
    checksum: str = ""
