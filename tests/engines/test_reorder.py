"""Tests for stock_engines.reorder."""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.reorder import (
    build_suggestion,
    calculate_reorder_point,
    days_until_stockout,
    rank_suggestions,
    suggested_reorder_quantity,
    urgency_ratio,
)
from stock_kernel.domain.types import InventoryItem


def _item(name="Widget", stock=10, threshold=5, active=True):
    return InventoryItem(
        item_id=uuid4(), name=name, stock_quantity=stock,
        low_stock_threshold=threshold, is_active=active,
    )


class TestReorderPoint:
    def test_rounds_up(self):
        # 2.1/day * 10 days * 1.5 = 31.5
        assert calculate_reorder_point(Decimal("2.1"), 10, Decimal("1.5")) == 32

    def test_exact_integer_unchanged(self):
        assert calculate_reorder_point(Decimal("2"), 7, Decimal("1.5")) == 21

    def test_tiny_fraction_still_rounds_up(self):
        assert calculate_reorder_point(Decimal("0.01"), 1, Decimal("1")) == 1

    def test_zero_velocity(self):
        assert calculate_reorder_point(Decimal("0"), 7, Decimal("1.5")) == 0

    def test_keyword_call(self):
        rop = calculate_reorder_point(
            daily_velocity=Decimal("1"), lead_time_days=3, safety_stock_multiplier=Decimal("1.2"),
        )
        assert rop == 4

    @pytest.mark.parametrize(
        "args",
        [
            (Decimal("-1"), 7, Decimal("1.5")),
            (Decimal("1"), -1, Decimal("1.5")),
            (Decimal("1"), 7, Decimal("-0.5")),
        ],
    )
    def test_negative_inputs_rejected(self, args):
        with pytest.raises(ValueError):
            calculate_reorder_point(*args)


class TestSuggestedQuantity:
    def test_two_cycles_minus_stock(self):
        assert suggested_reorder_quantity(32, 10) == 54

    def test_floored_at_zero(self):
        assert suggested_reorder_quantity(10, 50) == 0

    def test_coverage_cycles(self):
        assert suggested_reorder_quantity(10, 5, coverage_cycles=3) == 25


class TestUrgencyAndStockout:
    def test_urgency_ratio(self):
        assert urgency_ratio(8, 10) == Decimal("0.8")
        assert urgency_ratio(0, 10) == Decimal("0")

    def test_urgency_requires_positive_rop(self):
        with pytest.raises(ValueError):
            urgency_ratio(0, 0)

    def test_days_until_stockout_floors(self):
        assert days_until_stockout(10, Decimal("3")) == 3

    def test_days_until_stockout_zero_velocity(self):
        assert days_until_stockout(10, Decimal("0")) is None


class TestBuildSuggestion:
    def test_at_reorder_point_is_suggested(self):
        item = _item(stock=32)
        s = build_suggestion(item, Decimal("2.1"), 32, confidence=70)
        assert s is not None
        assert s.suggested_reorder_quantity == 32
        assert s.urgency_ratio == Decimal("1")
        assert s.days_until_stockout == 15
        assert s.confidence_score == 70
        assert s.item_name == "Widget"

    def test_above_reorder_point_not_suggested(self):
        assert build_suggestion(_item(stock=33), Decimal("2.1"), 32) is None

    def test_zero_reorder_point_not_suggested(self):
        assert build_suggestion(_item(stock=0), Decimal("0"), 0) is None

    def test_untracked_not_suggested(self):
        assert build_suggestion(_item(stock=0, threshold=None), Decimal("1"), 10) is None


def test_rank_most_urgent_first():
    a = build_suggestion(_item("A", stock=8), Decimal("1"), 10)
    b = build_suggestion(_item("B", stock=0), Decimal("1"), 10)
    c = build_suggestion(_item("C", stock=5), Decimal("1"), 10)
    assert [s.item_name for s in rank_suggestions([a, b, c])] == ["B", "C", "A"]
