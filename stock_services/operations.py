"""
StockAlertOperations -- the operator-facing surface.

Responsibility:
    The entry points a host UI or the CLI calls.  Each call owns exactly one
    transaction, opened from the session factory and committed or rolled
    back before returning.

Contract:
    get_active_alerts, get_alert_history, resolve_alert,
    get_reorder_suggestions, get_alert_settings, update_alert_settings,
    trigger_sweep_now, get_usage_history, get_velocity_trend,
    get_current_risk, recalculate_reorder_points.

    ``trigger_sweep_now`` goes through the attached scheduler when there is
    one, so a manual run never overlaps a scheduled one.  Without a
    scheduler, manual runs are serialized on a local lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_kernel.db.engine import transaction
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.types import (
    AlertSettings,
    ClassifiedItem,
    ReorderPointResult,
    ReorderSuggestion,
    StockAlert,
    SweepRunResult,
    SweepTrigger,
    UsageEvent,
    VelocityTrend,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.selectors.alert_selector import AlertSelector
from stock_kernel.selectors.item_selector import ItemSelector
from stock_kernel.services.settings_service import AlertSettingsService
from stock_kernel.services.usage_ledger import UsageLedger
from stock_services.alert_lifecycle import AlertLifecycleManager
from stock_services.notifications import (
    LogOnlySender,
    NotificationDispatcher,
    NotificationSender,
)
from stock_services.reorder_point_engine import ReorderPointEngine
from stock_services.stock_level_monitor import StockLevelMonitor
from stock_services.sweep import SweepRunner
from stock_services.velocity_calculator import ConsumptionVelocityCalculator

logger = get_logger("services.operations")


class ManualTrigger(Protocol):
    def trigger_now(self) -> SweepRunResult: ...


class StockAlertOperations:
    """Operator surface over one session factory."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._dispatcher = NotificationDispatcher.from_sender(
            notifier or LogOnlySender(),
            timeout_seconds=self._config.notifications.channel_timeout_seconds,
        )
        self._runner = SweepRunner(
            session_factory, self._clock, self._config, self._dispatcher,
        )
        self._scheduler: ManualTrigger | None = None
        self._sweep_lock = threading.Lock()

    def attach_scheduler(self, scheduler: ManualTrigger | None) -> None:
        """Route ``trigger_sweep_now`` through ``scheduler``."""
        self._scheduler = scheduler

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    def get_active_alerts(self) -> Sequence[StockAlert]:
        with transaction(self._session_factory) as session:
            return AlertSelector(session).active_alerts()

    def get_alert_history(self, limit: int = 50) -> Sequence[StockAlert]:
        with transaction(self._session_factory) as session:
            return AlertSelector(session).history(limit)

    def resolve_alert(
        self,
        alert_id: UUID,
        user_id: UUID | None,
        notes: str | None = None,
    ) -> StockAlert:
        with LogContext.bind(
            alert_id=str(alert_id),
            actor_id=str(user_id) if user_id else None,
        ):
            with transaction(self._session_factory) as session:
                return AlertLifecycleManager(
                    session, self._clock, self._dispatcher,
                ).resolve(alert_id, user_id, notes)

    def trigger_sweep_now(self) -> SweepRunResult:
        if self._scheduler is not None:
            return self._scheduler.trigger_now()
        with self._sweep_lock:
            return self._runner.run(SweepTrigger.MANUAL)

    def get_current_risk(self) -> Sequence[ClassifiedItem]:
        with transaction(self._session_factory) as session:
            return StockLevelMonitor(session, self._clock).current_risk()

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def get_alert_settings(self) -> AlertSettings:
        with transaction(self._session_factory) as session:
            return self._settings(session).get()

    def update_alert_settings(self, updated_by: UUID | None = None, **changes: Any) -> AlertSettings:
        with transaction(self._session_factory) as session:
            return self._settings(session).update(updated_by=updated_by, **changes)

    # -------------------------------------------------------------------------
    # Reorder analytics
    # -------------------------------------------------------------------------

    def get_reorder_suggestions(self) -> Sequence[ReorderSuggestion]:
        with transaction(self._session_factory) as session:
            return self._reorder(session).suggestions()

    def recalculate_reorder_points(self) -> Sequence[ReorderPointResult]:
        with transaction(self._session_factory) as session:
            return self._reorder(session).recalculate_all()

    def get_velocity_trend(self, item_id: UUID) -> VelocityTrend:
        with transaction(self._session_factory) as session:
            ItemSelector(session).get(item_id)
            return ConsumptionVelocityCalculator(
                session, self._clock, self._config.reorder,
            ).trend(item_id)

    def get_usage_history(self, item_id: UUID, days: int | None = None) -> Sequence[UsageEvent]:
        with transaction(self._session_factory) as session:
            ItemSelector(session).get(item_id)
            return UsageLedger(session, self._clock).usage_history(
                item_id, days or self._config.reorder.usage_history_days,
            )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _settings(self, session: Session) -> AlertSettingsService:
        return AlertSettingsService(session, self._clock, self._config.alerts.to_settings())

    def _reorder(self, session: Session) -> ReorderPointEngine:
        return ReorderPointEngine(session, self._clock, self._config.reorder)
