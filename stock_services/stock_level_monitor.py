"""
StockLevelMonitor -- the periodic threshold sweep.

Responsibility:
    Selects tracked items and classifies those at or below their static
    low-stock threshold.  Side-effect free: it creates no alerts and hands
    its result to AlertLifecycleManager.

Invariants enforced:
    - settings.enabled == False: zero items checked, nothing classified.
    - A malformed item (e.g. negative stock) becomes an ItemError on the
      result; the rest of the inventory is still classified.
"""

from __future__ import annotations

from collections.abc import Sequence

from stock_engines.classification import classify
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import AlertSettings, ClassifiedItem, ItemError, SweepResult
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.item_selector import ItemSelector
from stock_kernel.services.base import BaseService

logger = get_logger("services.monitor")


class StockLevelMonitor(BaseService):
    """Read-side threshold evaluation."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._items = ItemSelector(session)

    def sweep(self, settings: AlertSettings) -> SweepResult:
        if not settings.enabled:
            logger.info("sweep_disabled")
            return SweepResult(checked=0, enabled=False)

        checked, below, errors = self._evaluate()
        logger.info(
            "sweep_evaluated",
            extra={
                "checked": checked,
                "below_threshold": len(below),
                "errors": len(errors),
            },
        )
        return SweepResult(
            checked=checked,
            below_threshold=tuple(below),
            errors=tuple(errors),
        )

    def current_risk(self) -> Sequence[ClassifiedItem]:
        """Same classification as ``sweep``, ignoring the kill switch."""
        _, below, _ = self._evaluate()
        return below

    def _evaluate(self) -> tuple[int, list[ClassifiedItem], list[ItemError]]:
        items = self._items.tracked_items()
        below: list[ClassifiedItem] = []
        errors: list[ItemError] = []
        for item in items:
            try:
                classified = classify(item)
            except ValueError as exc:
                logger.warning(
                    "item_classification_failed",
                    extra={"item_id": str(item.item_id), "reason": str(exc)},
                )
                errors.append(ItemError(item.item_id, "CLASSIFICATION_FAILED", str(exc)))
                continue
            if classified is not None:
                below.append(classified)
        return len(items), below, errors
