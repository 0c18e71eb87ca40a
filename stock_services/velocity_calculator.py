"""
ConsumptionVelocityCalculator -- average daily consumption from the ledger.

Responsibility:
    Reads usage events for an item and hands them to the pure velocity
    engine with ``as_of`` taken from the injected clock.

Invariants enforced:
    - Only consumption events count; the divisor is the full window.
    - Zero qualifying events is a velocity of 0, never an error.
    - Trend windows (30/60/90 by default) are display-only.  The reorder
      point always uses ``velocity_window_days``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from stock_config.schema import ReorderDefaults
from stock_engines.velocity import confidence_score, consumption_velocity
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import UsageEvent, VelocityTrend
from stock_kernel.services.base import BaseService
from stock_kernel.services.usage_ledger import UsageLedger


class ConsumptionVelocityCalculator(BaseService):
    """Velocity and confidence per item over trailing windows."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        reorder: ReorderDefaults | None = None,
    ):
        super().__init__(session, clock)
        self._reorder = reorder or ReorderDefaults()
        self._ledger = UsageLedger(session, self.clock)

    @property
    def default_window_days(self) -> int:
        return self._reorder.velocity_window_days

    def velocity(self, item_id: UUID, window_days: int | None = None) -> Decimal:
        window = self.default_window_days if window_days is None else window_days
        as_of = self.clock.now()
        return consumption_velocity(self._events(item_id, window, as_of), window, as_of)

    def confidence(self, item_id: UUID, window_days: int | None = None) -> int:
        window = self.default_window_days if window_days is None else window_days
        as_of = self.clock.now()
        return confidence_score(self._events(item_id, window, as_of), window, as_of)

    def velocity_and_confidence(
        self,
        item_id: UUID,
        window_days: int | None = None,
    ) -> tuple[Decimal, int]:
        """Both figures from a single ledger read."""
        window = self.default_window_days if window_days is None else window_days
        as_of = self.clock.now()
        events = self._events(item_id, window, as_of)
        return (
            consumption_velocity(events, window, as_of),
            confidence_score(events, window, as_of),
        )

    def trend(self, item_id: UUID, windows: Sequence[int] | None = None) -> VelocityTrend:
        """Velocity per window, each computed independently over one read."""
        windows = tuple(windows or self._reorder.trend_windows)
        as_of = self.clock.now()
        events = self._events(item_id, max(windows), as_of)
        return VelocityTrend(
            item_id=item_id,
            rates={w: consumption_velocity(events, w, as_of) for w in windows},
        )

    def _events(self, item_id: UUID, window_days: int, as_of: datetime) -> Sequence[UsageEvent]:
        return self._ledger.query(item_id, since=as_of - timedelta(days=window_days))
