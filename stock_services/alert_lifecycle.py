"""
AlertLifecycleManager -- the open/resolved alert state machine.

Responsibility:
    Turns classified items into alert rows and notification requests, and
    resolves alerts on operator request.

    process(), per classified item:

        no open alert            -> create (count=1), request notification
        open, inside cooldown    -> nothing written, nothing requested
        open, cooldown elapsed   -> refresh quantity/type, count += 1,
                                    request notification

    deliver() sends the requested notifications.  The caller runs it only
    after the transaction holding the alert changes has committed.

Invariants enforced:
    - At most one unresolved alert per item.  The partial unique index makes
      create-if-absent atomic; losing that race is "already open".
    - Each item runs in its own SAVEPOINT.  A failure rolls back only that
      item and is reported as an ItemError.
    - process() never talks to a notification channel.  A rolled-back
      sweep therefore sends nothing, and its retry notifies exactly once.
    - A transport failure in deliver() never undoes the alert change.
    - Resolution does not look at stock; a still-low item reopens on the
      next sweep with notification_count == 1.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stock_kernel.domain.clock import Clock, as_utc
from stock_kernel.domain.types import (
    AlertSettings,
    ClassifiedItem,
    DeliveryResult,
    ItemError,
    NotificationRequest,
    ProcessResult,
    StockAlert,
)
from stock_kernel.exceptions import AlertNotFoundError, AlreadyResolvedError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.alert import StockAlertModel
from stock_kernel.services.base import BaseService
from stock_services.notifications import LogOnlySender, NotificationDispatcher

logger = get_logger("services.alert_lifecycle")

_CREATED = "created"
_UPDATED = "updated"
_COOLDOWN = "cooldown"


class AlertLifecycleManager(BaseService):
    """Owns alert creation, re-notification and resolution."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ):
        super().__init__(session, clock)
        self._dispatcher = dispatcher or NotificationDispatcher.from_sender(LogOnlySender())

    # -------------------------------------------------------------------------
    # process
    # -------------------------------------------------------------------------

    def process(
        self,
        classified_items: Sequence[ClassifiedItem],
        settings: AlertSettings,
    ) -> ProcessResult:
        if not settings.enabled:
            logger.info("alert_processing_disabled")
            return ProcessResult()

        now = self.clock.now()
        created = updated = requested = cooldown = concurrent = 0
        errors: list[ItemError] = []
        pending: list[NotificationRequest] = []

        for classified in classified_items:
            with LogContext.bind(item_id=str(classified.item_id)):
                savepoint = self.session.begin_nested()
                try:
                    outcome, alert = self._apply(classified, settings, now)
                    savepoint.commit()
                except IntegrityError:
                    savepoint.rollback()
                    concurrent += 1
                    logger.info(
                        "alert_already_open",
                        extra={"item_id": str(classified.item_id)},
                    )
                    continue
                except Exception as exc:
                    savepoint.rollback()
                    code = getattr(exc, "code", "ALERT_PROCESSING_FAILED")
                    logger.warning(
                        "alert_processing_failed",
                        extra={"item_id": str(classified.item_id), "error_code": code},
                        exc_info=True,
                    )
                    errors.append(ItemError(classified.item_id, code, str(exc)))
                    continue

                if outcome == _COOLDOWN:
                    cooldown += 1
                    continue
                if outcome == _CREATED:
                    created += 1
                else:
                    updated += 1

                requested += 1
                pending.append(NotificationRequest(alert, classified.item))

        result = ProcessResult(
            created=created,
            updated=updated,
            notifications_requested=requested,
            cooldown_skipped=cooldown,
            concurrent_skipped=concurrent,
            errors=tuple(errors),
            pending_notifications=tuple(pending),
        )
        logger.info(
            "alerts_processed",
            extra={
                "alerts_created": created,
                "alerts_updated": updated,
                "notifications_requested": requested,
                "cooldown_skipped": cooldown,
                "concurrent_skipped": concurrent,
                "errors": len(errors),
            },
        )
        return result

    def deliver(self, result: ProcessResult, settings: AlertSettings) -> ProcessResult:
        """
        Send every pending notification in ``result``, one dispatcher call
        per alert.  Never raises; failures are recorded as DeliveryResults.
        """
        deliveries: list[DeliveryResult] = []
        for request in result.pending_notifications:
            with LogContext.bind(
                item_id=str(request.item.item_id),
                alert_id=str(request.alert.alert_id),
            ):
                deliveries.extend(self._dispatcher.notify(request.alert, request.item, settings))
        return replace(
            result,
            pending_notifications=(),
            deliveries=result.deliveries + tuple(deliveries),
        )

    def _apply(
        self,
        classified: ClassifiedItem,
        settings: AlertSettings,
        now: datetime,
    ) -> tuple[str, StockAlert | None]:
        existing = self.session.scalars(
            select(StockAlertModel)
            .where(StockAlertModel.item_id == classified.item_id)
            .where(StockAlertModel.resolved.is_(False))
            .with_for_update()
        ).first()

        if existing is None:
            model = StockAlertModel(
                item_id=classified.item_id,
                alert_type=classified.alert_type.value,
                threshold_at_creation=classified.low_stock_threshold,
                quantity_at_alert=classified.stock_quantity,
                created_at=now,
                last_notified_at=now,
                notification_count=1,
                resolved=False,
            )
            self.session.add(model)
            self.session.flush()
            logger.info(
                "alert_created",
                extra={
                    "alert_id": str(model.id),
                    "alert_type": model.alert_type,
                    "quantity": model.quantity_at_alert,
                    "threshold": model.threshold_at_creation,
                },
            )
            return _CREATED, model.to_dto()

        hours_since = (now - as_utc(existing.last_notified_at)).total_seconds() / 3600
        if hours_since < settings.cooldown_hours:
            logger.debug(
                "alert_cooldown_active",
                extra={
                    "alert_id": str(existing.id),
                    "hours_since_last_notified": round(hours_since, 2),
                    "cooldown_hours": settings.cooldown_hours,
                },
            )
            return _COOLDOWN, None

        existing.quantity_at_alert = classified.stock_quantity
        existing.alert_type = classified.alert_type.value
        existing.notification_count += 1
        existing.last_notified_at = now
        self.session.flush()
        logger.info(
            "alert_renotified",
            extra={
                "alert_id": str(existing.id),
                "alert_type": existing.alert_type,
                "notification_count": existing.notification_count,
            },
        )
        return _UPDATED, existing.to_dto()

    # -------------------------------------------------------------------------
    # resolve
    # -------------------------------------------------------------------------

    def resolve(
        self,
        alert_id: UUID,
        resolved_by: UUID | None,
        notes: str | None = None,
    ) -> StockAlert:
        """
        Mark an alert resolved.

        Raises:
            AlertNotFoundError: No such alert.
            AlreadyResolvedError: The alert was resolved before.
        """
        model = self.session.get(StockAlertModel, alert_id, with_for_update=True)
        if model is None:
            raise AlertNotFoundError(str(alert_id))
        if model.resolved:
            raise AlreadyResolvedError(str(alert_id), as_utc(model.resolved_at))

        model.resolved = True
        model.resolved_at = self.clock.now()
        model.resolved_by = resolved_by
        model.resolution_notes = notes
        self.session.flush()

        logger.info(
            "alert_resolved",
            extra={
                "alert_id": str(alert_id),
                "item_id": str(model.item_id),
                "resolved_by": str(resolved_by) if resolved_by else None,
            },
        )
        return model.to_dto()
