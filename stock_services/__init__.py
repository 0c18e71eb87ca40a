"""
stock_services -- imperative shell of the stock alert engine.

Services that read and write through a caller-owned Session
(ConsumptionVelocityCalculator, ReorderPointEngine, StockLevelMonitor,
AlertLifecycleManager), the notification channels, the SweepRunner, and the
operator surface that owns transactions.
"""

from stock_services.alert_lifecycle import AlertLifecycleManager
from stock_services.notifications import (
    EmailChannel,
    LogOnlySender,
    NotificationChannel,
    NotificationDispatcher,
    NotificationSender,
    SmsChannel,
    render_notification,
)
from stock_services.operations import StockAlertOperations
from stock_services.reorder_point_engine import ReorderPointEngine
from stock_services.stock_level_monitor import StockLevelMonitor
from stock_services.sweep import SweepRunner
from stock_services.velocity_calculator import ConsumptionVelocityCalculator

__all__ = [
    "AlertLifecycleManager",
    "ConsumptionVelocityCalculator",
    "EmailChannel",
    "LogOnlySender",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationSender",
    "ReorderPointEngine",
    "SmsChannel",
    "StockAlertOperations",
    "StockLevelMonitor",
    "SweepRunner",
    "render_notification",
]
