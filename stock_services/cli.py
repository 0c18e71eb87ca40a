"""
stock-engine -- command line access to the operator surface.

Usage:
    stock-engine init-db
    stock-engine sweep
    stock-engine alerts
    stock-engine history [--limit 50]
    stock-engine resolve ALERT_ID [--user USER_ID] [--notes TEXT]
    stock-engine suggestions
    stock-engine recalculate
    stock-engine risk
    stock-engine usage ITEM_ID [--days 90]
    stock-engine trend ITEM_ID
    stock-engine settings show
    stock-engine settings update [--enabled/--no-enabled] [--interval 360] ...

Configuration comes from get_active_config(): ``--config`` or
$STOCK_ENGINE_CONFIG for the YAML file, ``--database-url`` or $DATABASE_URL
for the database.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from uuid import UUID

import yaml

from stock_config import get_active_config
from stock_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from stock_kernel.domain.types import AlertSettings, StockAlert, SweepRunResult
from stock_kernel.exceptions import StockEngineError
from stock_kernel.logging_config import configure_logging
from stock_services.operations import StockAlertOperations


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-engine",
        description="Inventory reorder and stock alert engine.",
    )
    parser.add_argument("--config", help="Path to the engine YAML configuration.")
    parser.add_argument("--database-url", help="Overrides the configured database URL.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the engine's tables.")
    sub.add_parser("sweep", help="Run one sweep now.")
    sub.add_parser("alerts", help="List unresolved alerts.")
    sub.add_parser("suggestions", help="List reorder suggestions, most urgent first.")
    sub.add_parser("recalculate", help="Recompute cached reorder points.")
    sub.add_parser("risk", help="Items at or below threshold right now.")

    history = sub.add_parser("history", help="List recent alerts, resolved or not.")
    history.add_argument("--limit", type=int, default=50)

    resolve = sub.add_parser("resolve", help="Resolve an alert.")
    resolve.add_argument("alert_id", type=UUID)
    resolve.add_argument("--user", type=UUID, default=None)
    resolve.add_argument("--notes", default=None)

    usage = sub.add_parser("usage", help="Usage events for an item, newest first.")
    usage.add_argument("item_id", type=UUID)
    usage.add_argument("--days", type=int, default=None)

    trend = sub.add_parser("trend", help="Velocity per trend window for an item.")
    trend.add_argument("item_id", type=UUID)

    settings = sub.add_parser("settings", help="Show or update alert settings.")
    settings_sub = settings.add_subparsers(dest="settings_command", required=True)
    settings_sub.add_parser("show")
    update = settings_sub.add_parser("update")
    update.add_argument("--enabled", action=argparse.BooleanOptionalAction, default=None)
    update.add_argument("--email", dest="notify_by_email",
                        action=argparse.BooleanOptionalAction, default=None)
    update.add_argument("--sms", dest="notify_by_sms",
                        action=argparse.BooleanOptionalAction, default=None)
    update.add_argument("--interval", dest="check_interval_minutes", type=int, default=None)
    update.add_argument("--cooldown", dest="cooldown_hours", type=int, default=None)
    update.add_argument("--emails", dest="recipient_emails", default=None,
                        help="Comma-separated email recipients.")
    update.add_argument("--phones", dest="recipient_phones", default=None,
                        help="Comma-separated SMS recipients.")
    update.add_argument("--user", type=UUID, default=None)
    return parser


def _print_alert(alert: StockAlert) -> None:
    state = "resolved" if alert.resolved else "open"
    print(
        f"{alert.alert_id}  {alert.alert_type.value:<12} {state:<8} "
        f"qty={alert.quantity_at_alert} threshold={alert.threshold_at_creation} "
        f"notified={alert.notification_count}x last={alert.last_notified_at.isoformat()}"
    )


def _print_settings(settings: AlertSettings) -> None:
    print(f"enabled:                {settings.enabled}")
    print(f"notify_by_email:        {settings.notify_by_email}")
    print(f"notify_by_sms:          {settings.notify_by_sms}")
    print(f"check_interval_minutes: {settings.check_interval_minutes}")
    print(f"cooldown_hours:         {settings.cooldown_hours}")
    print(f"recipient_emails:       {', '.join(settings.recipient_emails) or '-'}")
    print(f"recipient_phones:       {', '.join(settings.recipient_phones) or '-'}")


def _print_run(result: SweepRunResult) -> None:
    print(f"Sweep {result.sweep_id}: {result.status.value}")
    if result.error:
        print(f"  Error: {result.error_code}: {result.error}")
        return
    if result.sweep is None or result.process is None:
        return
    print(f"  Checked: {result.checked}, below threshold: {len(result.sweep.below_threshold)}")
    print(
        f"  Alerts created: {result.process.created}, updated: {result.process.updated}, "
        f"in cooldown: {result.process.cooldown_skipped}"
    )
    print(f"  Notifications requested: {result.process.notifications_requested}")
    for delivery in result.process.deliveries:
        if not delivery.success:
            print(f"  Delivery failed ({delivery.channel}): {delivery.error}")
    for err in (*result.sweep.errors, *result.process.errors):
        print(f"  Item {err.item_id}: {err.code}: {err.message}")


def _dispatch(args: argparse.Namespace, ops: StockAlertOperations) -> int:
    command = args.command

    if command == "sweep":
        result = ops.trigger_sweep_now()
        _print_run(result)
        return 0 if result.status.value != "failed" else 1

    if command == "alerts":
        alerts = ops.get_active_alerts()
        if not alerts:
            print("No open alerts.")
        for alert in alerts:
            _print_alert(alert)
        return 0

    if command == "history":
        for alert in ops.get_alert_history(args.limit):
            _print_alert(alert)
        return 0

    if command == "resolve":
        alert = ops.resolve_alert(args.alert_id, args.user, args.notes)
        print(f"Resolved {alert.alert_id} at {alert.resolved_at.isoformat()}")
        return 0

    if command == "suggestions":
        suggestions = ops.get_reorder_suggestions()
        if not suggestions:
            print("No items need reordering.")
        for s in suggestions:
            stockout = "-" if s.days_until_stockout is None else f"{s.days_until_stockout}d"
            print(
                f"{s.item_name:<30} stock={s.current_stock:<5} rop={s.reorder_point:<5} "
                f"order={s.suggested_reorder_quantity:<5} velocity={s.daily_velocity:.2f}/day "
                f"stockout={stockout} confidence={s.confidence_score}"
            )
        return 0

    if command == "recalculate":
        results = ops.recalculate_reorder_points()
        print(f"Recalculated {len(results)} reorder point(s).")
        return 0

    if command == "risk":
        for classified in ops.get_current_risk():
            print(
                f"{classified.item.name:<30} {classified.alert_type.value:<12} "
                f"stock={classified.stock_quantity} threshold={classified.low_stock_threshold}"
            )
        return 0

    if command == "usage":
        for event in ops.get_usage_history(args.item_id, args.days):
            print(
                f"{event.occurred_at.isoformat()}  {event.change_type.value:<18} "
                f"{event.quantity_change:+d} -> {event.quantity_after}  {event.notes or ''}"
            )
        return 0

    if command == "trend":
        trend = ops.get_velocity_trend(args.item_id)
        for window, rate in sorted(trend.rates.items()):
            print(f"{window:>3}d: {rate:.2f}/day")
        return 0

    if command == "settings":
        if args.settings_command == "show":
            _print_settings(ops.get_alert_settings())
            return 0
        fields = (
            "enabled", "notify_by_email", "notify_by_sms", "check_interval_minutes",
            "cooldown_hours", "recipient_emails", "recipient_phones",
        )
        changes = {f: getattr(args, f) for f in fields if getattr(args, f) is not None}
        if not changes:
            print("Nothing to update.", file=sys.stderr)
            return 2
        _print_settings(ops.update_alert_settings(updated_by=args.user, **changes))
        return 0

    raise AssertionError(f"unhandled command {command!r}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()

    try:
        config = get_active_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    init_engine_from_url(args.database_url or config.database_url)

    if args.command == "init-db":
        create_tables()
        print("Tables created.")
        return 0

    ops = StockAlertOperations(get_session_factory(), config=config)
    try:
        return _dispatch(args, ops)
    except StockEngineError as e:
        print(f"ERROR: {e.code}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
