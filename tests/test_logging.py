"""Tests for the structured logging system (stock_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from stock_kernel.exceptions import AlertNotFoundError
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    """JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "stock_engine.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("sweep_completed", extra={"checked": 42, "status": "completed"})

        record = _parse_log(stream)
        assert record["checked"] == 42
        assert record["status"] == "completed"

    def test_uuid_and_decimal_serialized_as_strings(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        item_id = uuid4()
        get_logger("test").info(
            "velocity", extra={"item_id": item_id, "daily_velocity": Decimal("2.1")},
        )

        record = _parse_log(stream)
        assert record["item_id"] == str(item_id)
        assert record["daily_velocity"] == "2.1"

    def test_exception_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        alert_id = str(uuid4())
        try:
            raise AlertNotFoundError(alert_id)
        except AlertNotFoundError:
            get_logger("test").error("resolve_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "AlertNotFoundError"
        assert record["exc_code"] == "ALERT_NOT_FOUND"
        assert record["exc_alert_id"] == alert_id
        assert "traceback" in record


class TestLogContext:
    """Sweep-scoped context propagation."""

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(sweep_id="sw-1", trigger="manual")
        get_logger("test").info("sweep_started")

        record = _parse_log(stream)
        assert record["sweep_id"] == "sw-1"
        assert record["trigger"] == "manual"

    def test_bind_restores_previous_values(self):
        LogContext.set(sweep_id="outer")
        with LogContext.bind(sweep_id="inner", item_id="item-1"):
            assert LogContext.get_all() == {"sweep_id": "inner", "item_id": "item-1"}
        assert LogContext.get_all() == {"sweep_id": "outer"}

    def test_none_values_not_set(self):
        LogContext.set(sweep_id="a", trigger=None)
        assert LogContext.get_all() == {"sweep_id": "a"}

    def test_clear(self):
        LogContext.set(sweep_id="a", alert_id="b")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        get_logger("test").info("once")

        assert len(_parse_all_logs(stream)) == 1

    def test_level_filters(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        log = get_logger("test")
        log.info("dropped")
        log.warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=logging.NullHandler())
        assert logging.getLogger("stock_engine").propagate is False
