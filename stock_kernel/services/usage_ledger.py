"""
UsageLedger -- append-only record of stock-quantity changes.

Responsibility:
    Records every change to an item's on-hand quantity together with the
    reason for it, and writes the item's ``stock_quantity`` in the same
    flush.  Serves the ordered event streams that velocity calculation and
    audit views read.

Architecture position:
    Kernel > Services.  The only writer of ``stock_usage_events`` and of
    ``inventory_items.stock_quantity``.

Invariants enforced:
    - quantity_after >= 0.
    - quantity_after == last known quantity + quantity_change.  The last
      known quantity is the newest event's quantity_after; for an item
      with no events it is the item's stock_quantity (0 when unset).
    - Events are never updated or deleted (see db/immutability.py).
      Corrections are new events.

Failure modes:
    - ItemNotFoundError: unknown item_id.
    - NegativeQuantityError / QuantityInconsistentError: rejected before
      anything is written.
    - IntegrityError on (item_id, sequence): a concurrent writer appended
      first.  The caller's transaction should be retried with a fresh
      quantity.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import ChangeType, UsageEvent
from stock_kernel.exceptions import (
    ItemNotFoundError,
    NegativeQuantityError,
    QuantityInconsistentError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import InventoryItemModel
from stock_kernel.models.usage import UsageEventModel
from stock_kernel.services.base import BaseService

logger = get_logger("services.usage_ledger")


class UsageLedger(BaseService):
    """
    Append-only usage ledger.

    Contract:
        ``record`` validates and appends one event and updates the item's
        quantity in one flush.  ``query`` returns events oldest first;
        ``usage_history`` returns them newest first.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session, clock)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def record(
        self,
        item_id: UUID,
        quantity_change: int,
        change_type: ChangeType | str,
        quantity_after: int,
        notes: str | None = None,
        changed_by: UUID | None = None,
    ) -> UsageEvent:
        """
        Append one usage event and set the item's stock to ``quantity_after``.

        Raises:
            ItemNotFoundError: No such item.
            NegativeQuantityError: ``quantity_after`` < 0.
            QuantityInconsistentError: ``quantity_after`` does not follow from
                the last known quantity plus ``quantity_change``.
        """
        change_type = ChangeType(change_type)
        item = self._get_item(item_id)

        if quantity_after < 0:
            raise NegativeQuantityError(str(item_id), quantity_after)

        last = self._last_event(item_id)
        if last is not None:
            last_known = last.quantity_after
        else:
            last_known = item.stock_quantity or 0

        if last_known + quantity_change != quantity_after:
            logger.warning(
                "usage_rejected_inconsistent",
                extra={
                    "item_id": str(item_id),
                    "last_known_quantity": last_known,
                    "quantity_change": quantity_change,
                    "quantity_after": quantity_after,
                },
            )
            raise QuantityInconsistentError(
                str(item_id), last_known, quantity_change, quantity_after,
            )

        model = UsageEventModel(
            item_id=item_id,
            sequence=(last.sequence + 1) if last is not None else 1,
            quantity_change=quantity_change,
            change_type=change_type.value,
            quantity_after=quantity_after,
            occurred_at=self.clock.now(),
            notes=notes,
            changed_by=changed_by,
        )
        self.session.add(model)
        item.stock_quantity = quantity_after
        self.session.flush()

        logger.info(
            "usage_recorded",
            extra={
                "item_id": str(item_id),
                "change_type": change_type.value,
                "quantity_change": quantity_change,
                "quantity_after": quantity_after,
                "sequence": model.sequence,
            },
        )
        return model.to_dto()

    def adjust_stock(
        self,
        item_id: UUID,
        quantity_change: int,
        change_type: ChangeType | str,
        notes: str | None = None,
        changed_by: UUID | None = None,
    ) -> UsageEvent:
        """
        Apply a signed change to the item's stock.

        Locks the item row, derives the authoritative quantity_after from
        the last known quantity, and delegates to ``record``.
        """
        item = self.session.execute(
            select(InventoryItemModel)
            .where(InventoryItemModel.id == item_id)
            .with_for_update()
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(str(item_id))

        last = self._last_event(item_id)
        current = last.quantity_after if last is not None else (item.stock_quantity or 0)

        return self.record(
            item_id,
            quantity_change,
            change_type,
            current + quantity_change,
            notes=notes,
            changed_by=changed_by,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def query(self, item_id: UUID, since: datetime | None = None) -> Sequence[UsageEvent]:
        """Events for ``item_id`` at or after ``since``, oldest first."""
        stmt = select(UsageEventModel).where(UsageEventModel.item_id == item_id)
        if since is not None:
            stmt = stmt.where(UsageEventModel.occurred_at >= since)
        stmt = stmt.order_by(UsageEventModel.occurred_at, UsageEventModel.sequence)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def usage_history(self, item_id: UUID, days: int = 90) -> Sequence[UsageEvent]:
        """Events for the trailing ``days`` days, newest first."""
        since = self.clock.now() - timedelta(days=days)
        stmt = (
            select(UsageEventModel)
            .where(UsageEventModel.item_id == item_id)
            .where(UsageEventModel.occurred_at >= since)
            .order_by(UsageEventModel.occurred_at.desc(), UsageEventModel.sequence.desc())
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get_item(self, item_id: UUID) -> InventoryItemModel:
        item = self.session.get(InventoryItemModel, item_id)
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item

    def _last_event(self, item_id: UUID) -> UsageEventModel | None:
        return self.session.scalars(
            select(UsageEventModel)
            .where(UsageEventModel.item_id == item_id)
            .order_by(UsageEventModel.sequence.desc())
            .limit(1)
        ).first()
