"""ORM models.  Importing this package registers every table on Base.metadata."""

from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.models.alert import AlertSettingsModel, StockAlertModel
from stock_kernel.models.item import InventoryItemModel
from stock_kernel.models.usage import UsageEventModel

register_immutability_listeners()

__all__ = [
    "AlertSettingsModel",
    "InventoryItemModel",
    "StockAlertModel",
    "UsageEventModel",
]
