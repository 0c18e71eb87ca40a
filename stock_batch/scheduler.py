"""
StockAlertScheduler -- in-process background sweep scheduler.

Contract:
    Runs one sweep shortly after ``start()`` (``startup_delay_seconds``) and
    then every ``check_interval_minutes``, re-reading the interval from the
    stored AlertSettings before each wait so an operator change applies on
    the next cycle.  ``trigger_now()`` runs an out-of-band sweep.

Invariants enforced:
    - Sweeps are serialized on one lock.  A manual trigger waits for an
      in-flight run; a scheduled run that finds one in flight is SKIPPED.
    - ``start()`` is idempotent.
    - ``stop()`` sets the stop event and joins the thread; an in-flight
      sweep finishes its transaction before the thread exits.
    - All timestamps come from the injected Clock.  Only the wait between
      runs uses wall-clock time.

Non-goals:
    - NOT a distributed scheduler.  Cross-process safety comes from the
      unique open-alert index, not from a lock here.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_batch.types import SchedulerStatus
from stock_config.schema import EngineConfig
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.types import SweepRunResult, SweepRunStatus, SweepTrigger
from stock_kernel.exceptions import StockEngineError
from stock_kernel.logging_config import get_logger
from stock_services.notifications import (
    LogOnlySender,
    NotificationDispatcher,
    NotificationSender,
)
from stock_services.sweep import SweepRunner

logger = get_logger("batch.scheduler")


class StockAlertScheduler:
    """Background thread driving sweep -> process runs."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        notifier: NotificationSender | None = None,
    ):
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        dispatcher = NotificationDispatcher.from_sender(
            notifier or LogOnlySender(),
            timeout_seconds=self._config.notifications.channel_timeout_seconds,
        )
        self._runner = SweepRunner(session_factory, self._clock, self._config, dispatcher)

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()
        self._run_lock = threading.Lock()

        self._interval_minutes = self._config.alerts.check_interval_minutes
        self._last_result: SweepRunResult | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def run_once(
        self,
        trigger: SweepTrigger | str = SweepTrigger.SCHEDULED,
        wait: bool = True,
    ) -> SweepRunResult:
        """Run one sweep now (public for testing).

        With ``wait=False`` a run already in flight makes this a SKIPPED
        no-op instead of queueing behind it.
        """
        trigger = SweepTrigger(trigger)
        if not self._run_lock.acquire(blocking=wait):
            now = self._clock.now()
            logger.info("sweep_skipped_in_progress", extra={"trigger": trigger.value})
            return SweepRunResult(
                sweep_id=uuid4(),
                trigger=trigger,
                status=SweepRunStatus.SKIPPED,
                started_at=now,
                completed_at=now,
            )
        try:
            result = self._runner.run(trigger)
            self._last_result = result
            return result
        finally:
            self._run_lock.release()

    def trigger_now(self) -> SweepRunResult:
        """Manual out-of-band sweep.  Waits for an in-flight run to finish."""
        return self.run_once(SweepTrigger.MANUAL, wait=True)

    def start(self) -> None:
        """Start the background thread.  A second call while running is a no-op."""
        with self._start_lock:
            if self._thread is not None and self._thread.is_alive():
                return

            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run_loop,
                name="stock-alert-scheduler",
                daemon=True,
            )
            self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "interval_minutes": self._interval_minutes,
                "startup_delay_seconds": self._config.scheduler.startup_delay_seconds,
            },
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal stop and wait for the thread, letting an in-flight sweep finish."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout or self._config.scheduler.stop_timeout_seconds)
            if thread.is_alive():
                logger.warning("scheduler_stop_timeout")
                return
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def status(self) -> SchedulerStatus:
        last = self._last_result
        return SchedulerStatus(
            running=self.is_running,
            interval_minutes=self._interval_minutes,
            last_run_at=last.started_at if last else None,
            last_status=last.status if last else None,
            last_sweep_id=last.sweep_id if last else None,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop.  Exits when the stop event is set."""
        if self._stop_event.wait(timeout=self._config.scheduler.startup_delay_seconds):
            return

        trigger = SweepTrigger.STARTUP
        while not self._stop_event.is_set():
            try:
                self.run_once(trigger, wait=False)
            except Exception:
                logger.exception("scheduler_tick_exception")
            trigger = SweepTrigger.SCHEDULED
            self._stop_event.wait(timeout=self._refresh_interval() * 60)

    def _refresh_interval(self) -> int:
        try:
            self._interval_minutes = self._runner.read_settings().check_interval_minutes
        except (SQLAlchemyError, StockEngineError):
            logger.warning(
                "scheduler_interval_refresh_failed",
                extra={"interval_minutes": self._interval_minutes},
                exc_info=True,
            )
        return self._interval_minutes
