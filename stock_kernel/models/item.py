"""
Module: stock_kernel.models.item
Responsibility: ORM persistence for inventory items as the stock engine sees
    them: current quantity, static threshold, replenishment parameters and the
    cached reorder analytics written by ReorderPointEngine.recalculate_all().
Architecture position: Kernel > Models.  Inherits from TrackedBase.

Invariants enforced:
    - stock_quantity is written only by UsageLedger, in the same flush as the
      usage event that explains the change.
    - safety_stock_multiplier and average_daily_usage are Decimal
      (Numeric(38,9)), never float.

Failure modes:
    - IntegrityError on duplicate id.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.clock import as_utc


class InventoryItemModel(TrackedBase):
    """
    ORM model for an inventory item.

    Maps to: stock_kernel.domain.types.InventoryItem (frozen dataclass).
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("idx_inventory_item_active", "is_active"),
        Index("idx_inventory_item_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(255))
    item_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Null in either column disables static alerting for the item.
    stock_quantity: Mapped[int | None] = mapped_column(nullable=True)
    low_stock_threshold: Mapped[int | None] = mapped_column(nullable=True)

    lead_time_days: Mapped[int] = mapped_column(default=7)
    safety_stock_multiplier: Mapped[Decimal] = mapped_column(default=Decimal("1.5"))

    # Cached reorder analytics
    reorder_point: Mapped[int | None] = mapped_column(nullable=True)
    average_daily_usage: Mapped[Decimal | None] = mapped_column(nullable=True)
    last_calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen InventoryItem DTO."""
        from stock_kernel.domain.types import InventoryItem

        return InventoryItem(
            item_id=self.id,
            name=self.name,
            stock_quantity=self.stock_quantity,
            low_stock_threshold=self.low_stock_threshold,
            lead_time_days=self.lead_time_days,
            safety_stock_multiplier=Decimal(self.safety_stock_multiplier),
            is_active=self.is_active,
            item_type=self.item_type,
            reorder_point=self.reorder_point,
            average_daily_usage=self.average_daily_usage,
            last_calculated_at=as_utc(self.last_calculated_at),
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID | None = None) -> "InventoryItemModel":
        """Create ORM model from frozen InventoryItem DTO."""
        return cls(
            id=dto.item_id,
            name=dto.name,
            item_type=dto.item_type,
            is_active=dto.is_active,
            stock_quantity=dto.stock_quantity,
            low_stock_threshold=dto.low_stock_threshold,
            lead_time_days=dto.lead_time_days,
            safety_stock_multiplier=dto.safety_stock_multiplier,
            reorder_point=dto.reorder_point,
            average_daily_usage=dto.average_daily_usage,
            last_calculated_at=dto.last_calculated_at,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<InventoryItemModel {self.id} {self.name!r} "
            f"qty={self.stock_quantity} threshold={self.low_stock_threshold}>"
        )
