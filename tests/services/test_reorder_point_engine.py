"""Tests for ReorderPointEngine: reorder points, suggestions, cached recalculation."""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.exceptions import ItemNotFoundError
from stock_kernel.selectors.item_selector import ItemSelector
from stock_services.reorder_point_engine import ReorderPointEngine


@pytest.fixture
def stocked(make_item, consume):
    """Two items below their reorder point and one with no usage."""
    widget = make_item(
        "Widget", stock_quantity=95, low_stock_threshold=5,
        lead_time_days=10, safety_stock_multiplier=Decimal("1.5"),
    )
    consume(widget, [(1, 30), (10, 33)])  # 2.1/day, stock 32, rop 32

    bolt = make_item(
        "Bolt", stock_quantity=70, low_stock_threshold=5,
        lead_time_days=7, safety_stock_multiplier=Decimal("1.5"),
    )
    consume(bolt, [(2, 60)])  # 2/day, stock 10, rop 21

    idle = make_item("Idle", stock_quantity=0, low_stock_threshold=5)
    return widget, bolt, idle


class TestReorderPoint:
    def test_rounded_up(self, session, clock, stocked):
        widget, _, _ = stocked
        assert ReorderPointEngine(session, clock).reorder_point(widget.id) == 32

    def test_no_usage_is_zero(self, session, clock, stocked):
        _, _, idle = stocked
        assert ReorderPointEngine(session, clock).reorder_point(idle.id) == 0

    def test_unknown_item(self, session, clock):
        with pytest.raises(ItemNotFoundError):
            ReorderPointEngine(session, clock).reorder_point(uuid4())

    def test_suggested_quantity(self, session, clock, stocked):
        _, bolt, _ = stocked
        # 2 * 21 - 10
        assert ReorderPointEngine(session, clock).suggested_quantity(bolt.id) == 32

    @pytest.mark.parametrize(
        "fields",
        [{"is_active": False}, {"low_stock_threshold": None}],
        ids=["inactive", "no_threshold"],
    )
    def test_untracked_item_is_zero(self, session, clock, make_item, consume, fields):
        item = make_item("Shelved", stock_quantity=40, **fields)
        consume(item, [(1, 30)])

        engine = ReorderPointEngine(session, clock)

        assert engine.reorder_point(item.id) == 0
        assert engine.suggested_quantity(item.id) == 0


class TestSuggestions:
    def test_ranked_most_urgent_first(self, session, clock, stocked):
        widget, bolt, _ = stocked

        suggestions = ReorderPointEngine(session, clock).suggestions()

        assert [s.item_id for s in suggestions] == [bolt.id, widget.id]
        first = suggestions[0]
        assert first.current_stock == 10
        assert first.reorder_point == 21
        assert first.suggested_reorder_quantity == 32
        assert first.daily_velocity == Decimal("2")
        assert first.days_until_stockout == 5
        assert suggestions[1].urgency_ratio == Decimal("1")

    def test_items_above_reorder_point_excluded(self, session, clock, make_item, consume):
        item = make_item("Plenty", stock_quantity=500, low_stock_threshold=5)
        consume(item, [(1, 30)])
        assert ReorderPointEngine(session, clock).suggestions() == []

    def test_untracked_items_excluded(self, session, clock, make_item, consume):
        item = make_item("Untracked", stock_quantity=40, low_stock_threshold=None)
        consume(item, [(1, 30)])
        assert ReorderPointEngine(session, clock).suggestions() == []


class TestRecalculateAll:
    def test_caches_on_items(self, session, clock, stocked):
        widget, bolt, idle = stocked

        results = ReorderPointEngine(session, clock).recalculate_all()

        assert {r.item_id: r.reorder_point for r in results} == {
            widget.id: 32, bolt.id: 21, idle.id: 0,
        }
        cached = ItemSelector(session).get(widget.id)
        assert cached.reorder_point == 32
        assert cached.average_daily_usage == Decimal("2.1")
        assert cached.last_calculated_at == clock.now()

    def test_one_failure_does_not_stop_others(self, session, clock, make_item, captured_logs):
        broken = make_item("Broken", stock_quantity=5, lead_time_days=-1)
        fine = make_item("Fine", stock_quantity=5)

        results = ReorderPointEngine(session, clock).recalculate_all()

        assert [r.item_id for r in results] == [fine.id]
        assert ItemSelector(session).get(broken.id).reorder_point is None
        assert ItemSelector(session).get(fine.id).reorder_point == 0
        assert any(
            r["message"] == "reorder_point_recalculation_failed" for r in captured_logs()
        )
