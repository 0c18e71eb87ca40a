"""Tests for stock_engines.velocity (consumption velocity and confidence)."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.velocity import confidence_score, consumption_velocity
from stock_kernel.domain.types import ChangeType, UsageEvent

AS_OF = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
ITEM = uuid4()


def _event(days_ago, change, change_type=ChangeType.CONSUMPTION):
    return UsageEvent(
        event_id=uuid4(),
        item_id=ITEM,
        quantity_change=change,
        change_type=change_type,
        quantity_after=100,
        occurred_at=AS_OF - timedelta(days=days_ago),
    )


class TestConsumptionVelocity:
    def test_no_events_is_zero(self):
        assert consumption_velocity([], 30, AS_OF) == Decimal("0")

    def test_sum_of_consumption_over_window(self):
        events = [_event(1, -30), _event(10, -33)]
        assert consumption_velocity(events, 30, AS_OF) == Decimal("2.1")

    def test_only_consumption_counts(self):
        events = [
            _event(1, -10),
            _event(2, 50, ChangeType.RECEIVED_SHIPMENT),
            _event(3, -7, ChangeType.INVENTORY_COUNT),
            _event(4, -5, ChangeType.DAMAGE),
            _event(5, -2, ChangeType.ADJUSTMENT),
        ]
        assert consumption_velocity(events, 10, AS_OF) == Decimal("1")

    def test_replenishments_only_is_zero(self):
        events = [_event(1, 40, ChangeType.RECEIVED_SHIPMENT)]
        assert consumption_velocity(events, 30, AS_OF) == Decimal("0")

    def test_events_outside_window_ignored(self):
        events = [_event(31, -100), _event(29, -30)]
        assert consumption_velocity(events, 30, AS_OF) == Decimal("1")

    def test_divides_by_full_window_for_young_items(self):
        # Two days of history, 90-day window: still divided by 90.
        events = [_event(1, -45), _event(2, -45)]
        assert consumption_velocity(events, 90, AS_OF) == Decimal("1")

    def test_absolute_value_of_consumption(self):
        # A consumption recorded with a positive sign still depletes.
        events = [_event(1, 30)]
        assert consumption_velocity(events, 30, AS_OF) == Decimal("1")

    def test_full_precision(self):
        events = [_event(1, -10)]
        assert consumption_velocity(events, 30, AS_OF) == Decimal(10) / Decimal(30)

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            consumption_velocity([], 0, AS_OF)


class TestConfidenceScore:
    def test_no_events_is_zero(self):
        assert confidence_score([], 30, AS_OF) == 0

    def test_ten_identical_events_is_full_confidence(self):
        events = [_event(d, -3) for d in range(10)]
        assert confidence_score(events, 30, AS_OF) == 100

    def test_single_event(self):
        # sample 5 + consistency 50 (cv 0)
        assert confidence_score([_event(1, -4)], 30, AS_OF) == 55

    def test_inconsistent_amounts_score_lower(self):
        steady = [_event(d, -5) for d in range(5)]
        erratic = [_event(d, -q) for d, q in enumerate([1, 20, 1, 20, 1])]
        assert confidence_score(erratic, 30, AS_OF) < confidence_score(steady, 30, AS_OF)

    def test_known_value(self):
        # amounts 2 and 6: mean 4, population sd 2, cv 0.5
        # sample 10 + consistency 37.5 = 47.5 -> 48 (half up)
        events = [_event(1, -2), _event(2, -6)]
        assert confidence_score(events, 30, AS_OF) == 48

    def test_zero_amount_events_use_cv_of_one(self):
        events = [_event(1, 0), _event(2, 0)]
        # sample 10 + consistency 25
        assert confidence_score(events, 30, AS_OF) == 35
