"""Read-only selectors over items and alerts."""

from stock_kernel.selectors.alert_selector import AlertSelector
from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.item_selector import ItemSelector

__all__ = ["AlertSelector", "BaseSelector", "ItemSelector"]
