"""Tests for StockLevelMonitor: the periodic threshold sweep."""

from dataclasses import replace

from stock_kernel.domain.types import AlertType
from stock_services.stock_level_monitor import StockLevelMonitor


class TestSweep:
    def test_classifies_tracked_items_only(self, session, clock, make_item, settings):
        low = make_item("Low", stock_quantity=3, low_stock_threshold=5)
        empty = make_item("Empty", stock_quantity=0, low_stock_threshold=5)
        make_item("Fine", stock_quantity=20, low_stock_threshold=5)
        make_item("No threshold", stock_quantity=0, low_stock_threshold=None)
        make_item("No quantity", stock_quantity=None, low_stock_threshold=5)
        make_item("Inactive", stock_quantity=0, low_stock_threshold=5, is_active=False)

        result = StockLevelMonitor(session, clock).sweep(settings)

        assert result.enabled
        assert result.checked == 3
        by_id = {c.item_id: c.alert_type for c in result.below_threshold}
        assert by_id == {low.id: AlertType.LOW_STOCK, empty.id: AlertType.OUT_OF_STOCK}
        assert result.errors == ()

    def test_boundary_is_inclusive(self, session, clock, make_item, settings):
        at = make_item("At", stock_quantity=5, low_stock_threshold=5)
        make_item("Above", stock_quantity=6, low_stock_threshold=5)

        result = StockLevelMonitor(session, clock).sweep(settings)

        assert [c.item_id for c in result.below_threshold] == [at.id]

    def test_disabled_checks_nothing(self, session, clock, make_item, settings):
        make_item(stock_quantity=0, low_stock_threshold=5)

        result = StockLevelMonitor(session, clock).sweep(replace(settings, enabled=False))

        assert result.enabled is False
        assert result.checked == 0
        assert result.below_threshold == ()

    def test_malformed_item_reported_not_fatal(self, session, clock, make_item, settings):
        bad = make_item("Bad", stock_quantity=-4, low_stock_threshold=5)
        good = make_item("Good", stock_quantity=1, low_stock_threshold=5)

        result = StockLevelMonitor(session, clock).sweep(settings)

        assert result.checked == 2
        assert [c.item_id for c in result.below_threshold] == [good.id]
        assert len(result.errors) == 1
        assert result.errors[0].item_id == bad.id
        assert result.errors[0].code == "CLASSIFICATION_FAILED"

    def test_empty_inventory(self, session, clock, settings):
        result = StockLevelMonitor(session, clock).sweep(settings)
        assert result.checked == 0
        assert result.below_threshold == ()

    def test_sweep_writes_nothing(self, session, clock, make_item, settings):
        make_item(stock_quantity=0, low_stock_threshold=5)
        StockLevelMonitor(session, clock).sweep(settings)
        assert not session.new and not session.dirty


class TestCurrentRisk:
    def test_ignores_kill_switch(self, session, clock, make_item):
        item = make_item(stock_quantity=2, low_stock_threshold=5)
        risk = StockLevelMonitor(session, clock).current_risk()
        assert [c.item_id for c in risk] == [item.id]
