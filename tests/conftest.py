"""
Pytest fixtures for the stock alert engine test suite.

Provides:
- In-memory SQLite engine (StaticPool) with every table created
- Session and session factory bound to it
- DeterministicClock
- Item / usage factories
- RecordingSender standing in for email/SMS transport
- Structured log capture
- Seeder for tests that drive code owning its own transactions
"""

import json
import logging
import threading
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from stock_config.schema import (
    EngineConfig,
    NotificationDefaults,
    SchedulerDefaults,
)
from stock_kernel.db.engine import create_tables, drop_tables, make_engine, transaction
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.types import AlertSettings, ChangeType
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from sqlalchemy.orm import sessionmaker

import stock_kernel.models  # noqa: F401  (registers tables and ledger listeners)
from stock_kernel.models.item import InventoryItemModel
from stock_kernel.services.usage_ledger import UsageLedger

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_engine logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ...):
            ...
            assert any(r["message"] == "alert_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_engine")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    eng = make_engine("sqlite://")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock():
    return DeterministicClock(T0)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_item(session):
    """Create an InventoryItemModel in ``session`` and flush it."""
    counter = {"n": 0}

    def _make(
        name: str | None = None,
        stock_quantity: int | None = 10,
        low_stock_threshold: int | None = 5,
        lead_time_days: int = 7,
        safety_stock_multiplier: Decimal = Decimal("1.5"),
        is_active: bool = True,
        item_type: str | None = None,
    ) -> InventoryItemModel:
        counter["n"] += 1
        item = InventoryItemModel(
            name=name or f"Item {counter['n']:03d}",
            stock_quantity=stock_quantity,
            low_stock_threshold=low_stock_threshold,
            lead_time_days=lead_time_days,
            safety_stock_multiplier=safety_stock_multiplier,
            is_active=is_active,
            item_type=item_type,
        )
        session.add(item)
        session.flush()
        return item

    return _make


@pytest.fixture
def ledger(session, clock):
    return UsageLedger(session, clock)


@pytest.fixture
def consume(ledger, clock):
    """Record consumption events spread back in time from the clock's now.

    ``consume(item, [(days_ago, qty), ...])`` records each event at
    ``now - days_ago`` and leaves the clock where it was.
    """

    def _consume(item, events: Sequence[tuple[float, int]], change_type=ChangeType.CONSUMPTION):
        now = clock.now()
        for days_ago, qty in sorted(events, key=lambda e: -e[0]):
            clock.set_time(now)
            clock.advance(days=-days_ago)
            ledger.adjust_stock(item.id, -qty, change_type)
        clock.set_time(now)

    return _consume


# =============================================================================
# Notifications
# =============================================================================


class RecordingSender:
    """NotificationSender that records calls and can fail or stall per channel."""

    def __init__(self):
        self.emails: list[tuple[list[str], str, str]] = []
        self.sms: list[tuple[list[str], str]] = []
        self.email_error: str | None = None
        self.sms_error: str | None = None
        self.email_exception: Exception | None = None
        self.email_delay: float = 0
        self._lock = threading.Lock()

    def send_email(self, recipients, subject, body):
        if self.email_delay:
            time.sleep(self.email_delay)
        if self.email_exception is not None:
            raise self.email_exception
        with self._lock:
            self.emails.append((list(recipients), subject, body))
        return self.email_error

    def send_sms(self, recipients, body):
        with self._lock:
            self.sms.append((list(recipients), body))
        return self.sms_error


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def settings():
    """Alert settings with an email and an SMS recipient, both channels on."""
    return AlertSettings(
        notify_by_email=True,
        notify_by_sms=True,
        cooldown_hours=24,
        recipient_emails=("ops@example.com",),
        recipient_phones=("+15550100",),
    )


@pytest.fixture
def config():
    """Engine config tuned for tests: no startup delay, short timeouts."""
    return EngineConfig(
        scheduler=SchedulerDefaults(
            startup_delay_seconds=0,
            recalculate_reorder_points=True,
            stop_timeout_seconds=5,
        ),
        notifications=NotificationDefaults(channel_timeout_seconds=2),
    )


# =============================================================================
# Committed seed data (for code that opens its own transactions)
# =============================================================================


class Seeder:
    """Writes items and usage in committed transactions via the session factory.

    Tests that drive SweepRunner, StockAlertOperations or the scheduler use
    this instead of the ``session`` fixture: the in-memory database has one
    shared connection, so an open test transaction would block theirs.
    """

    def __init__(self, session_factory, clock):
        self._session_factory = session_factory
        self._clock = clock
        self._n = 0

    def item(
        self,
        name: str | None = None,
        stock_quantity: int | None = 10,
        low_stock_threshold: int | None = 5,
        **fields,
    ):
        self._n += 1
        with transaction(self._session_factory) as s:
            item = InventoryItemModel(
                name=name or f"Seeded {self._n:03d}",
                stock_quantity=stock_quantity,
                low_stock_threshold=low_stock_threshold,
                **fields,
            )
            s.add(item)
            s.flush()
            return item.id

    def consume(self, item_id, events: Sequence[tuple[float, int]]):
        now = self._clock.now()
        with transaction(self._session_factory) as s:
            ledger = UsageLedger(s, self._clock)
            for days_ago, qty in sorted(events, key=lambda e: -e[0]):
                self._clock.set_time(now)
                self._clock.advance(days=-days_ago)
                ledger.adjust_stock(item_id, -qty, ChangeType.CONSUMPTION)
        self._clock.set_time(now)

    def restock(self, item_id, qty: int):
        with transaction(self._session_factory) as s:
            UsageLedger(s, self._clock).adjust_stock(item_id, qty, ChangeType.RECEIVED_SHIPMENT)


@pytest.fixture
def seed(session_factory, clock):
    return Seeder(session_factory, clock)
