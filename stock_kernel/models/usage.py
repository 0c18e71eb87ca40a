"""
Module: stock_kernel.models.usage
Responsibility: ORM persistence for the append-only usage ledger.
Architecture position: Kernel > Models.  Written only by
    stock_kernel.services.usage_ledger.UsageLedger.

Invariants enforced:
    - Rows are never updated or deleted (db/immutability.py listeners).
    - (item_id, sequence) is unique, so two writers racing to append the
      "next" event for an item cannot both succeed.
    - quantity_after is the post-change snapshot; the ledger checks it
      against the previous snapshot before insert.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base
from stock_kernel.domain.clock import as_utc


class UsageEventModel(Base):
    """
    ORM model for one stock-quantity change.

    Maps to: stock_kernel.domain.types.UsageEvent (frozen dataclass).
    """

    __tablename__ = "stock_usage_events"

    __table_args__ = (
        UniqueConstraint("item_id", "sequence", name="uq_usage_event_item_sequence"),
        Index("idx_usage_event_item_time", "item_id", "occurred_at"),
        Index("idx_usage_event_change_type", "change_type"),
    )

    item_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_items.id"))
    sequence: Mapped[int] = mapped_column()
    quantity_change: Mapped[int] = mapped_column()
    change_type: Mapped[str] = mapped_column(String(50))
    quantity_after: Mapped[int] = mapped_column()
    occurred_at: Mapped[datetime] = mapped_column()
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[UUID | None] = mapped_column(nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen UsageEvent DTO."""
        from stock_kernel.domain.types import ChangeType, UsageEvent

        return UsageEvent(
            event_id=self.id,
            item_id=self.item_id,
            quantity_change=self.quantity_change,
            change_type=ChangeType(self.change_type),
            quantity_after=self.quantity_after,
            occurred_at=as_utc(self.occurred_at),
            notes=self.notes,
            changed_by=self.changed_by,
        )

    def __repr__(self) -> str:
        return (
            f"<UsageEventModel {self.id} item={self.item_id} "
            f"#{self.sequence} {self.change_type} {self.quantity_change:+d}>"
        )
