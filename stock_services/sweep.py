"""
SweepRunner -- one sweep -> process run in its own transaction.

Responsibility:
    Reads AlertSettings, runs StockLevelMonitor.sweep() and hands the
    result to AlertLifecycleManager.process(), all in one transaction.
    Notifications are sent only after that transaction commits.
    Optionally recomputes cached reorder points afterwards in a second
    transaction.  The scheduler and the operator surface both run sweeps
    through this class; serialization is the caller's job.

Failure modes:
    - SQLAlchemyError inside the sweep is wrapped in StorageError and the
      run is reported FAILED.  Nothing from that run is committed or sent;
      the next run is the retry.
    - A failed reorder recalculation is logged and does not fail the run.
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_kernel.db.engine import transaction
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import (
    AlertSettings,
    SweepRunResult,
    SweepRunStatus,
    SweepTrigger,
)
from stock_kernel.exceptions import StockEngineError, StorageError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.settings_service import AlertSettingsService
from stock_services.alert_lifecycle import AlertLifecycleManager
from stock_services.notifications import NotificationDispatcher
from stock_services.reorder_point_engine import ReorderPointEngine
from stock_services.stock_level_monitor import StockLevelMonitor

logger = get_logger("services.sweep")


class SweepRunner:
    """Executes sweep runs against a session factory."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock,
        config: EngineConfig,
        dispatcher: NotificationDispatcher,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._config = config
        self._dispatcher = dispatcher

    def read_settings(self) -> AlertSettings:
        with transaction(self._session_factory) as session:
            return self._settings_service(session).get()

    def run(self, trigger: SweepTrigger | str = SweepTrigger.MANUAL) -> SweepRunResult:
        trigger = SweepTrigger(trigger)
        sweep_id = uuid4()
        started_at = self._clock.now()

        with LogContext.bind(sweep_id=str(sweep_id), trigger=trigger.value):
            logger.info("sweep_started")
            try:
                with transaction(self._session_factory) as session:
                    settings = self._settings_service(session).get()
                    sweep = StockLevelMonitor(session, self._clock).sweep(settings)
                    manager = AlertLifecycleManager(session, self._clock, self._dispatcher)
                    process = manager.process(sweep.below_threshold, settings)
            except SQLAlchemyError as exc:
                error = StorageError("sweep", str(exc))
                logger.error(
                    "sweep_failed",
                    extra={"error_code": error.code},
                    exc_info=True,
                )
                return self._failed(sweep_id, trigger, started_at, error)
            except StockEngineError as exc:
                logger.error(
                    "sweep_failed",
                    extra={"error_code": exc.code},
                    exc_info=True,
                )
                return self._failed(sweep_id, trigger, started_at, exc)

            process = manager.deliver(process, settings)

            recalculated = 0
            if settings.enabled and self._config.scheduler.recalculate_reorder_points:
                recalculated = self._recalculate_reorder_points()

            status = SweepRunStatus.COMPLETED if settings.enabled else SweepRunStatus.DISABLED
            result = SweepRunResult(
                sweep_id=sweep_id,
                trigger=trigger,
                status=status,
                started_at=started_at,
                completed_at=self._clock.now(),
                sweep=sweep,
                process=process,
                reorder_points_recalculated=recalculated,
            )
            logger.info(
                "sweep_completed",
                extra={
                    "status": status.value,
                    "checked": result.checked,
                    "below_threshold": len(sweep.below_threshold),
                    "alerts_created": process.created,
                    "alerts_updated": process.updated,
                    "notifications_requested": process.notifications_requested,
                    "item_errors": len(sweep.errors) + len(process.errors),
                },
            )
            return result

    def _recalculate_reorder_points(self) -> int:
        try:
            with transaction(self._session_factory) as session:
                return len(
                    ReorderPointEngine(session, self._clock, self._config.reorder).recalculate_all()
                )
        except SQLAlchemyError:
            logger.error("reorder_recalculation_failed", exc_info=True)
            return 0

    def _settings_service(self, session: Session) -> AlertSettingsService:
        return AlertSettingsService(session, self._clock, self._config.alerts.to_settings())

    def _failed(self, sweep_id, trigger, started_at, error: StockEngineError) -> SweepRunResult:
        return SweepRunResult(
            sweep_id=sweep_id,
            trigger=trigger,
            status=SweepRunStatus.FAILED,
            started_at=started_at,
            completed_at=self._clock.now(),
            error_code=error.code,
            error=str(error),
        )
