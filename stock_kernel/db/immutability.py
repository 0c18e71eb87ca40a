"""
ORM-level append-only enforcement for the usage ledger.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners here intercept those events for UsageEventModel and
raise ImmutabilityViolationError, which aborts the flush:

    session.flush()
         |
         v
    [before_update] --> _check_usage_event_update() --> ImmutabilityViolationError
    [before_delete] --> _check_usage_event_delete() --> ImmutabilityViolationError

Corrections to stock are recorded as new usage events, never as edits.
Bulk ``session.execute(update(...))`` bypasses mapper events and is not
covered.
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _reject(target, operation: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "UsageEvent",
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="UsageEvent",
        entity_id=str(target.id),
        reason=f"usage events are append-only; {operation} is not allowed",
    )


def _check_usage_event_update(mapper, connection, target):
    _reject(target, "UPDATE")


def _check_usage_event_delete(mapper, connection, target):
    _reject(target, "DELETE")


def register_immutability_listeners() -> None:
    """Register the usage-ledger listeners.  Safe to call more than once."""
    from stock_kernel.models.usage import UsageEventModel

    if not event.contains(UsageEventModel, "before_update", _check_usage_event_update):
        event.listen(UsageEventModel, "before_update", _check_usage_event_update)
    if not event.contains(UsageEventModel, "before_delete", _check_usage_event_delete):
        event.listen(UsageEventModel, "before_delete", _check_usage_event_delete)
