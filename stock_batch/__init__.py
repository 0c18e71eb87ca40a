"""
stock_batch -- background execution for the stock alert engine.

StockAlertScheduler drives StockLevelMonitor -> AlertLifecycleManager on an
interval and on demand, off the caller's request path.
"""

from stock_batch.scheduler import StockAlertScheduler
from stock_batch.types import SchedulerStatus

__all__ = ["SchedulerStatus", "StockAlertScheduler"]
