"""
Typed Exception Hierarchy for the Stock Alert Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the scheduler, the operator surface, a host UI) need to react to
failures by category, not by parsing message strings:

    try:
        operations.resolve_alert(alert_id, user_id)
    except AlreadyResolvedError as e:
        return {"error": e.code, "resolved_at": e.resolved_at}

Every exception has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA as attributes (survives logging and serialization)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockEngineError (base)
    |
    +-- ValidationError
    |   +-- QuantityInconsistentError
    |   +-- NegativeQuantityError
    |   +-- InvalidSettingsError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- AlreadyResolvedError
    |
    +-- TransportError
    |   +-- ChannelTimeoutError
    |
    +-- StorageError
    |
    +-- ImmutabilityViolationError

===============================================================================
HANDLING POLICY
===============================================================================

- ValidationError     -> rejected input; nothing was written.
- NotFoundError       -> caller referenced a missing item or alert.
- AlreadyResolvedError-> double resolution; the first resolution stands.
- TransportError      -> NEVER fatal to a sweep.  Logged and recorded on the
                         delivery result; the alert state change is kept.
- StorageError        -> fatal to the current sweep only.  The scheduler logs
                         it and the next scheduled run is the retry.
- ImmutabilityViolationError -> a usage event was updated or deleted; the
                         flush is aborted and nothing is written.
"""

from datetime import datetime


class StockEngineError(Exception):
    """
    Base exception for all stock engine errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_ENGINE_ERROR"


# Validation


class ValidationError(StockEngineError):
    """Bad input rejected before any write."""

    code: str = "VALIDATION_ERROR"


class QuantityInconsistentError(ValidationError):
    """quantity_after does not equal the last known quantity plus the change."""

    code: str = "QUANTITY_INCONSISTENT"

    def __init__(
        self,
        item_id: str,
        last_known_quantity: int,
        quantity_change: int,
        quantity_after: int,
    ):
        self.item_id = item_id
        self.last_known_quantity = last_known_quantity
        self.quantity_change = quantity_change
        self.quantity_after = quantity_after
        super().__init__(
            f"Inconsistent quantity for item {item_id}: "
            f"{last_known_quantity} + ({quantity_change}) != {quantity_after}"
        )


class NegativeQuantityError(ValidationError):
    """A stock quantity would drop below zero."""

    code: str = "NEGATIVE_QUANTITY"

    def __init__(self, item_id: str, quantity_after: int):
        self.item_id = item_id
        self.quantity_after = quantity_after
        super().__init__(
            f"Quantity for item {item_id} cannot be negative: {quantity_after}"
        )


class InvalidSettingsError(ValidationError):
    """An AlertSettings update carries an unknown field or an invalid value."""

    code: str = "INVALID_SETTINGS"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid alert setting '{field_name}': {reason}")


# Lookup


class NotFoundError(StockEngineError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """Inventory item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


class AlertNotFoundError(NotFoundError):
    """Stock alert with given ID was not found."""

    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Stock alert not found: {alert_id}")


# Alert lifecycle


class AlreadyResolvedError(StockEngineError):
    """Stock alert was already resolved."""

    code: str = "ALERT_ALREADY_RESOLVED"

    def __init__(self, alert_id: str, resolved_at: datetime | None = None):
        self.alert_id = alert_id
        self.resolved_at = resolved_at
        super().__init__(
            f"Stock alert {alert_id} is already resolved"
            + (f" (at {resolved_at.isoformat()})" if resolved_at else "")
        )


# Notification transport


class TransportError(StockEngineError):
    """A notification channel failed to deliver."""

    code: str = "TRANSPORT_ERROR"

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason
        super().__init__(f"Notification channel '{channel}' failed: {reason}")


class ChannelTimeoutError(TransportError):
    """A notification channel did not finish within its timeout."""

    code: str = "CHANNEL_TIMEOUT"

    def __init__(self, channel: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(channel, f"timed out after {timeout_seconds}s")


# Storage


class StorageError(StockEngineError):
    """Read or write failure against the item/alert store."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage failure during {operation}: {reason}")


# Ledger integrity


class ImmutabilityViolationError(StockEngineError):
    """Attempted to modify or delete an append-only usage event."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
