"""Kernel services: the usage ledger and the alert settings store."""

from stock_kernel.services.base import BaseService
from stock_kernel.services.settings_service import AlertSettingsService
from stock_kernel.services.usage_ledger import UsageLedger

__all__ = ["AlertSettingsService", "BaseService", "UsageLedger"]
