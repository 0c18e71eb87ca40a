"""
Module: stock_kernel.selectors.item_selector
Responsibility: Read access to inventory items, in particular the tracked
    set that the monitor and the reorder engine iterate.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.types import InventoryItem
from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.models.item import InventoryItemModel
from stock_kernel.selectors.base import BaseSelector


class ItemSelector(BaseSelector):
    """Queries over ``inventory_items``."""

    def get(self, item_id: UUID) -> InventoryItem:
        model = self.session.get(InventoryItemModel, item_id)
        if model is None:
            raise ItemNotFoundError(str(item_id))
        return model.to_dto()

    def tracked_items(self) -> Sequence[InventoryItem]:
        """Active items with both stock quantity and threshold set, by name."""
        stmt = (
            select(InventoryItemModel)
            .where(InventoryItemModel.is_active.is_(True))
            .where(InventoryItemModel.stock_quantity.is_not(None))
            .where(InventoryItemModel.low_stock_threshold.is_not(None))
            .order_by(InventoryItemModel.name, InventoryItemModel.id)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]
