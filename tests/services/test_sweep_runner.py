"""Tests for SweepRunner: one sweep -> process run per transaction."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from stock_kernel.db.engine import make_engine, transaction
from stock_kernel.domain.types import SweepRunStatus, SweepTrigger
from stock_kernel.selectors.alert_selector import AlertSelector
from stock_kernel.selectors.item_selector import ItemSelector
from stock_kernel.services.settings_service import AlertSettingsService
from stock_services.notifications import NotificationDispatcher
from stock_services.sweep import SweepRunner


def _commit_fails_once(session_factory):
    """Session factory whose first commit raises OperationalError."""
    calls = {"commits": 0}

    def _make():
        session = session_factory()
        commit = session.commit

        def _commit():
            calls["commits"] += 1
            if calls["commits"] == 1:
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            commit()

        session.commit = _commit
        return session

    return _make


@pytest.fixture
def runner(session_factory, clock, config, sender):
    return SweepRunner(
        session_factory, clock, config, NotificationDispatcher.from_sender(sender, 2),
    )


@pytest.fixture
def with_recipients(session_factory, clock):
    with transaction(session_factory) as s:
        AlertSettingsService(s, clock).update(
            recipient_emails="ops@example.com", notify_by_sms=True, recipient_phones="+15550100",
        )


class TestRun:
    def test_completed_run_commits_alerts(self, runner, seed, session_factory, sender, with_recipients):
        low = seed.item("Low", stock_quantity=3, low_stock_threshold=5)
        seed.item("Fine", stock_quantity=30, low_stock_threshold=5)

        result = runner.run(SweepTrigger.MANUAL)

        assert result.status == SweepRunStatus.COMPLETED
        assert result.trigger == SweepTrigger.MANUAL
        assert result.checked == 2
        assert result.alerts_created == 1
        assert result.notifications_requested == 1
        assert result.error is None
        with transaction(session_factory) as s:
            assert AlertSelector(s).open_alert_for(low) is not None
        assert len(sender.emails) == 1
        assert len(sender.sms) == 1

    def test_recalculates_reorder_points(self, runner, seed, session_factory):
        item = seed.item("Widget", stock_quantity=100)
        seed.consume(item, [(1, 60)])

        result = runner.run()

        assert result.reorder_points_recalculated == 1
        with transaction(session_factory) as s:
            # 2/day * 7 days * 1.5
            assert ItemSelector(s).get(item).reorder_point == 21

    def test_string_trigger(self, runner):
        assert runner.run("scheduled").trigger == SweepTrigger.SCHEDULED

    def test_kill_switch_reports_disabled(self, runner, seed, session_factory, clock):
        seed.item(stock_quantity=0)
        with transaction(session_factory) as s:
            AlertSettingsService(s, clock).update(enabled=False)

        result = runner.run()

        assert result.status == SweepRunStatus.DISABLED
        assert result.checked == 0
        assert result.alerts_created == 0
        assert result.reorder_points_recalculated == 0
        with transaction(session_factory) as s:
            assert AlertSelector(s).history() == []

    def test_log_records_carry_sweep_id(self, runner, captured_logs):
        result = runner.run(SweepTrigger.STARTUP)

        started = next(r for r in captured_logs() if r["message"] == "sweep_started")
        completed = next(r for r in captured_logs() if r["message"] == "sweep_completed")
        assert started["sweep_id"] == str(result.sweep_id)
        assert started["trigger"] == "startup"
        assert completed["status"] == "completed"


class TestFailure:
    def test_storage_failure_reports_failed(self, clock, config, sender, captured_logs):
        # No tables: every statement fails.
        broken = make_engine("sqlite://")
        factory = sessionmaker(bind=broken, expire_on_commit=False)
        runner = SweepRunner(factory, clock, config, NotificationDispatcher.from_sender(sender))

        result = runner.run()

        assert result.status == SweepRunStatus.FAILED
        assert result.error_code == "STORAGE_ERROR"
        assert result.sweep is None
        assert any(r["message"] == "sweep_failed" for r in captured_logs())
        broken.dispose()

    def test_failed_commit_sends_nothing_and_retry_notifies_once(
        self, seed, session_factory, clock, config, sender, with_recipients,
    ):
        item = seed.item("Low", stock_quantity=3, low_stock_threshold=5)
        runner = SweepRunner(
            _commit_fails_once(session_factory), clock, config,
            NotificationDispatcher.from_sender(sender, 2),
        )

        first = runner.run()

        assert first.status == SweepRunStatus.FAILED
        assert first.error_code == "STORAGE_ERROR"
        assert sender.emails == []
        assert sender.sms == []
        with transaction(session_factory) as s:
            assert AlertSelector(s).open_alert_for(item) is None

        second = runner.run()

        assert second.status == SweepRunStatus.COMPLETED
        assert second.alerts_created == 1
        assert len(sender.emails) == 1
        assert len(sender.sms) == 1
        with transaction(session_factory) as s:
            assert AlertSelector(s).open_alert_for(item).notification_count == 1

    def test_consecutive_runs_are_independent(self, runner, seed, session_factory):
        seed.item(stock_quantity=1)
        assert runner.run().status == SweepRunStatus.COMPLETED
        assert runner.run().status == SweepRunStatus.COMPLETED


def test_read_settings_seeds_from_config(runner):
    settings = runner.read_settings()
    assert settings.enabled is True
    assert settings.check_interval_minutes == 360
