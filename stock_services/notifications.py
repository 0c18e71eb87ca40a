"""
Notification channels and the concurrent dispatcher.

Responsibility:
    Renders alert content and fans it out to the enabled channels (email,
    SMS) through an external ``NotificationSender``.  Each channel runs on
    its own worker with its own timeout; one channel's failure or slowness
    never prevents another from being attempted.

Architecture position:
    Services -- imperative shell.  Called by AlertLifecycleManager.deliver()
    once the sweep transaction holding the alert changes has committed.

Invariants enforced:
    - ``NotificationDispatcher.notify`` never raises.  Every failure becomes
      a ``DeliveryResult(success=False)`` and a ``notification_channel_failed``
      log record.
    - A channel with no recipients is a TransportError, not a silent skip.
    - A timed-out channel does not block the caller past its timeout; the
      worker is abandoned, not joined.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Protocol

from stock_kernel.domain.types import (
    AlertSettings,
    AlertType,
    DeliveryResult,
    InventoryItem,
    StockAlert,
    normalize_recipients,
)
from stock_kernel.exceptions import ChannelTimeoutError, TransportError
from stock_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class NotificationSender(Protocol):
    """
    External transport.  Returns None on success or an error string.

    The engine supplies fully rendered content; it never formats for a
    specific provider.
    """

    def send_email(self, recipients: Sequence[str], subject: str, body: str) -> str | None: ...

    def send_sms(self, recipients: Sequence[str], body: str) -> str | None: ...


class LogOnlySender:
    """Sender that records notifications in the log instead of delivering them."""

    def send_email(self, recipients: Sequence[str], subject: str, body: str) -> str | None:
        logger.info(
            "email_not_delivered_log_only",
            extra={"recipients": list(recipients), "subject": subject},
        )
        return None

    def send_sms(self, recipients: Sequence[str], body: str) -> str | None:
        logger.info(
            "sms_not_delivered_log_only",
            extra={"recipients": list(recipients), "body": body},
        )
        return None


# =============================================================================
# Rendering
# =============================================================================


@dataclass(frozen=True)
class RenderedNotification:
    subject: str
    body: str
    short_body: str


def render_notification(alert: StockAlert, item: InventoryItem) -> RenderedNotification:
    """Subject, email body and SMS body for ``alert`` on ``item``."""
    out_of_stock = alert.alert_type == AlertType.OUT_OF_STOCK
    quantity = alert.quantity_at_alert
    threshold = item.low_stock_threshold

    if out_of_stock:
        subject = f"OUT OF STOCK: {item.name}"
        closing = "This item is completely out of stock!"
        short_body = (
            f"OUT OF STOCK: {item.name}. Current: {quantity}. Please reorder immediately."
        )
    else:
        subject = f"Low Stock Alert: {item.name}"
        closing = "Stock is running low. Consider reordering soon."
        short_body = (
            f"LOW STOCK: {item.name}. Current: {quantity}, Threshold: {threshold}. "
            "Consider reordering."
        )

    lines = [
        subject,
        "",
        f"Item: {item.name}",
    ]
    if item.item_type:
        lines.append(f"Type: {item.item_type}")
    lines += [
        f"Current Stock: {quantity}",
        f"Threshold: {threshold}",
        "",
        closing,
    ]
    if alert.notification_count > 1:
        lines.append(f"Reminder #{alert.notification_count} for this alert.")
    lines += ["", "Please check your inventory management system for more details."]

    return RenderedNotification(subject=subject, body="\n".join(lines), short_body=short_body)


# =============================================================================
# Channels
# =============================================================================


class NotificationChannel(Protocol):
    """One delivery capability.  ``send`` raises TransportError on failure."""

    name: str

    def is_enabled(self, settings: AlertSettings) -> bool: ...

    def recipients(self, settings: AlertSettings) -> tuple[str, ...]: ...

    def send(self, recipients: Sequence[str], message: RenderedNotification) -> None: ...


class EmailChannel:
    name = "email"

    def __init__(self, sender: NotificationSender):
        self._sender = sender

    def is_enabled(self, settings: AlertSettings) -> bool:
        return settings.notify_by_email

    def recipients(self, settings: AlertSettings) -> tuple[str, ...]:
        return normalize_recipients(settings.recipient_emails)

    def send(self, recipients: Sequence[str], message: RenderedNotification) -> None:
        error = self._sender.send_email(list(recipients), message.subject, message.body)
        if error:
            raise TransportError(self.name, error)


class SmsChannel:
    name = "sms"

    def __init__(self, sender: NotificationSender):
        self._sender = sender

    def is_enabled(self, settings: AlertSettings) -> bool:
        return settings.notify_by_sms

    def recipients(self, settings: AlertSettings) -> tuple[str, ...]:
        return normalize_recipients(settings.recipient_phones)

    def send(self, recipients: Sequence[str], message: RenderedNotification) -> None:
        error = self._sender.send_sms(list(recipients), message.short_body)
        if error:
            raise TransportError(self.name, error)


# =============================================================================
# Dispatcher
# =============================================================================


class NotificationDispatcher:
    """
    Fans one alert out to every enabled channel concurrently.

    Contract:
        ``notify(alert, item, settings)`` returns one DeliveryResult per
        enabled channel and never raises.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        timeout_seconds: float = 10,
    ):
        self._channels = tuple(channels)
        self._timeout = timeout_seconds

    @classmethod
    def from_sender(
        cls,
        sender: NotificationSender,
        timeout_seconds: float = 10,
    ) -> NotificationDispatcher:
        return cls([EmailChannel(sender), SmsChannel(sender)], timeout_seconds)

    @property
    def channels(self) -> tuple[NotificationChannel, ...]:
        return self._channels

    def notify(
        self,
        alert: StockAlert,
        item: InventoryItem,
        settings: AlertSettings,
    ) -> tuple[DeliveryResult, ...]:
        enabled = [c for c in self._channels if c.is_enabled(settings)]
        if not enabled:
            logger.info(
                "notification_no_channels_enabled",
                extra={"alert_id": str(alert.alert_id)},
            )
            return ()

        message = render_notification(alert, item)
        results: list[DeliveryResult] = []
        pending = []

        executor = ThreadPoolExecutor(
            max_workers=len(enabled), thread_name_prefix="stock-notify",
        )
        try:
            for channel in enabled:
                recipients = channel.recipients(settings)
                if not recipients:
                    results.append(self._failed(
                        alert, channel.name, 0,
                        TransportError(channel.name, "no recipients configured"),
                    ))
                    continue
                pending.append(
                    (channel, recipients, executor.submit(channel.send, recipients, message))
                )

            deadline = time.monotonic() + self._timeout
            for channel, recipients, future in pending:
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    future.result(timeout=remaining)
                except FuturesTimeoutError:
                    future.cancel()
                    results.append(self._failed(
                        alert, channel.name, len(recipients),
                        ChannelTimeoutError(channel.name, self._timeout),
                    ))
                except TransportError as exc:
                    results.append(self._failed(alert, channel.name, len(recipients), exc))
                except Exception as exc:
                    # Third-party sender bug; still a transport failure, never fatal.
                    results.append(self._failed(
                        alert, channel.name, len(recipients),
                        TransportError(channel.name, f"{type(exc).__name__}: {exc}"),
                    ))
                else:
                    logger.info(
                        "notification_sent",
                        extra={
                            "alert_id": str(alert.alert_id),
                            "channel": channel.name,
                            "recipients": len(recipients),
                        },
                    )
                    results.append(DeliveryResult(channel.name, len(recipients), True))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return tuple(results)

    def _failed(
        self,
        alert: StockAlert,
        channel: str,
        recipients: int,
        exc: TransportError,
    ) -> DeliveryResult:
        logger.warning(
            "notification_channel_failed",
            extra={
                "alert_id": str(alert.alert_id),
                "channel": channel,
                "error_code": exc.code,
                "reason": exc.reason,
            },
        )
        return DeliveryResult(channel, recipients, False, error=str(exc))
