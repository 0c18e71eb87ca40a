"""
ReorderPointEngine -- dynamic reorder points and the suggestion list.

Responsibility:
    Combines each item's 30-day consumption velocity with its lead time and
    safety-stock multiplier into a reorder point, and builds the ranked
    list of items that need reordering.  ``recalculate_all`` caches the
    figures on the item rows for dashboards; suggestions are always
    computed fresh.

Invariants enforced:
    - Only tracked items are considered.
    - reorder point and suggested quantity are rounded up.
    - One item's failure in ``recalculate_all`` is logged and skipped; its
      savepoint is rolled back and the other items are still written.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from stock_config.schema import ReorderDefaults
from stock_engines.reorder import (
    build_suggestion,
    calculate_reorder_point,
    rank_suggestions,
    suggested_reorder_quantity,
)
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import InventoryItem, ReorderPointResult, ReorderSuggestion
from stock_kernel.exceptions import StockEngineError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import InventoryItemModel
from stock_kernel.selectors.item_selector import ItemSelector
from stock_kernel.services.base import BaseService
from stock_services.velocity_calculator import ConsumptionVelocityCalculator

logger = get_logger("services.reorder")


class ReorderPointEngine(BaseService):
    """Reorder analytics over tracked items."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        reorder: ReorderDefaults | None = None,
    ):
        super().__init__(session, clock)
        self._reorder = reorder or ReorderDefaults()
        self._velocity = ConsumptionVelocityCalculator(session, self.clock, self._reorder)
        self._items = ItemSelector(session)

    def reorder_point(self, item_id: UUID) -> int:
        """Reorder point for one item.  Untracked items always get 0."""
        item = self._items.get(item_id)
        if not item.tracking_enabled:
            return 0
        return self._reorder_point_for(item, self._velocity.velocity(item_id))

    def suggested_quantity(self, item_id: UUID) -> int:
        item = self._items.get(item_id)
        if not item.tracking_enabled:
            return 0
        rop = self._reorder_point_for(item, self._velocity.velocity(item_id))
        return suggested_reorder_quantity(
            rop, item.stock_quantity or 0, self._reorder.coverage_cycles,
        )

    def suggestions(self) -> Sequence[ReorderSuggestion]:
        """Tracked items at or below their reorder point, most urgent first."""
        suggestions = []
        for item in self._items.tracked_items():
            velocity, confidence = self._velocity.velocity_and_confidence(item.item_id)
            rop = self._reorder_point_for(item, velocity)
            suggestion = build_suggestion(
                item,
                velocity,
                rop,
                confidence=confidence,
                coverage_cycles=self._reorder.coverage_cycles,
            )
            if suggestion is not None:
                suggestions.append(suggestion)
        return rank_suggestions(suggestions)

    def recalculate_all(self) -> Sequence[ReorderPointResult]:
        """Recompute and cache reorder point and velocity on every tracked item."""
        now = self.clock.now()
        results = []
        failed = 0
        for item in self._items.tracked_items():
            try:
                with self.session.begin_nested():
                    velocity = self._velocity.velocity(item.item_id)
                    rop = self._reorder_point_for(item, velocity)
                    model = self.session.get(InventoryItemModel, item.item_id)
                    model.reorder_point = rop
                    model.average_daily_usage = velocity
                    model.last_calculated_at = now
            except (StockEngineError, ValueError, SQLAlchemyError):
                failed += 1
                logger.warning(
                    "reorder_point_recalculation_failed",
                    extra={"item_id": str(item.item_id)},
                    exc_info=True,
                )
                continue
            results.append(ReorderPointResult(item.item_id, rop, velocity))

        logger.info(
            "reorder_points_recalculated",
            extra={"updated": len(results), "failed": failed},
        )
        return results

    def _reorder_point_for(self, item: InventoryItem, velocity: Decimal) -> int:
        return calculate_reorder_point(
            daily_velocity=velocity,
            lead_time_days=item.lead_time_days or self._reorder.default_lead_time_days,
            safety_stock_multiplier=(
                item.safety_stock_multiplier or self._reorder.default_safety_stock_multiplier
            ),
        )
