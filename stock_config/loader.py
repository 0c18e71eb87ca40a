"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads the engine's YAML document and parses it into the frozen dataclasses
of ``stock_config.schema``.  Runtime callers go through
``stock_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Values are range-checked; bad values raise ``ValueError`` naming the key.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    AlertDefaults,
    EngineConfig,
    NotificationDefaults,
    ReorderDefaults,
    SchedulerDefaults,
)
from stock_kernel.domain.types import normalize_recipients


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a parsed YAML document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _check_keys(section: str, data: dict[str, Any], schema_cls: type) -> None:
    allowed = {f.name for f in fields(schema_cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{section}': {', '.join(unknown)}")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    return value


def _int(section: str, key: str, value: Any, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{section}.{key} must be >= {minimum}, got {value}")
    return value


def _number(section: str, key: str, value: Any, minimum: float, exclusive: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{section}.{key} must be a number, got {value!r}")
    if value < minimum or (exclusive and value == minimum):
        op = ">" if exclusive else ">="
        raise ValueError(f"{section}.{key} must be {op} {minimum}, got {value}")
    return value


def _bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def parse_alert_defaults(data: dict[str, Any]) -> AlertDefaults:
    _check_keys("alerts", data, AlertDefaults)
    base = AlertDefaults()
    return AlertDefaults(
        enabled=_bool("alerts", "enabled", data.get("enabled", base.enabled)),
        notify_by_email=_bool(
            "alerts", "notify_by_email", data.get("notify_by_email", base.notify_by_email),
        ),
        notify_by_sms=_bool(
            "alerts", "notify_by_sms", data.get("notify_by_sms", base.notify_by_sms),
        ),
        check_interval_minutes=_int(
            "alerts", "check_interval_minutes",
            data.get("check_interval_minutes", base.check_interval_minutes), 1,
        ),
        cooldown_hours=_int(
            "alerts", "cooldown_hours", data.get("cooldown_hours", base.cooldown_hours), 0,
        ),
        recipient_emails=normalize_recipients(data.get("recipient_emails")),
        recipient_phones=normalize_recipients(data.get("recipient_phones")),
    )


def parse_reorder_defaults(data: dict[str, Any]) -> ReorderDefaults:
    _check_keys("reorder", data, ReorderDefaults)
    base = ReorderDefaults()

    windows = data.get("trend_windows", list(base.trend_windows))
    if not isinstance(windows, list) or not windows:
        raise ValueError("reorder.trend_windows must be a non-empty list")
    trend_windows = tuple(_int("reorder", "trend_windows", w, 1) for w in windows)

    raw_multiplier = data.get(
        "default_safety_stock_multiplier", base.default_safety_stock_multiplier,
    )
    try:
        multiplier = Decimal(str(raw_multiplier))
    except InvalidOperation as exc:
        raise ValueError(
            f"reorder.default_safety_stock_multiplier must be a decimal, got {raw_multiplier!r}"
        ) from exc
    if multiplier < 1:
        raise ValueError(
            f"reorder.default_safety_stock_multiplier must be >= 1.0, got {multiplier}"
        )

    return ReorderDefaults(
        velocity_window_days=_int(
            "reorder", "velocity_window_days",
            data.get("velocity_window_days", base.velocity_window_days), 1,
        ),
        trend_windows=trend_windows,
        default_lead_time_days=_int(
            "reorder", "default_lead_time_days",
            data.get("default_lead_time_days", base.default_lead_time_days), 1,
        ),
        default_safety_stock_multiplier=multiplier,
        coverage_cycles=_int(
            "reorder", "coverage_cycles", data.get("coverage_cycles", base.coverage_cycles), 1,
        ),
        usage_history_days=_int(
            "reorder", "usage_history_days",
            data.get("usage_history_days", base.usage_history_days), 1,
        ),
    )


def parse_scheduler_defaults(data: dict[str, Any]) -> SchedulerDefaults:
    _check_keys("scheduler", data, SchedulerDefaults)
    base = SchedulerDefaults()
    return SchedulerDefaults(
        startup_delay_seconds=_number(
            "scheduler", "startup_delay_seconds",
            data.get("startup_delay_seconds", base.startup_delay_seconds), 0,
        ),
        recalculate_reorder_points=_bool(
            "scheduler", "recalculate_reorder_points",
            data.get("recalculate_reorder_points", base.recalculate_reorder_points),
        ),
        stop_timeout_seconds=_number(
            "scheduler", "stop_timeout_seconds",
            data.get("stop_timeout_seconds", base.stop_timeout_seconds), 0, exclusive=True,
        ),
    )


def parse_notification_defaults(data: dict[str, Any]) -> NotificationDefaults:
    _check_keys("notifications", data, NotificationDefaults)
    base = NotificationDefaults()
    return NotificationDefaults(
        channel_timeout_seconds=_number(
            "notifications", "channel_timeout_seconds",
            data.get("channel_timeout_seconds", base.channel_timeout_seconds), 0, exclusive=True,
        ),
    )


_TOP_LEVEL_KEYS = frozenset({"alerts", "reorder", "scheduler", "notifications", "database_url"})


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Parse a whole configuration document."""
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")

    database_url = data.get("database_url", EngineConfig.database_url)
    if not isinstance(database_url, str) or not database_url:
        raise ValueError("database_url must be a non-empty string")

    return EngineConfig(
        alerts=parse_alert_defaults(_section(data, "alerts")),
        reorder=parse_reorder_defaults(_section(data, "reorder")),
        scheduler=parse_scheduler_defaults(_section(data, "scheduler")),
        notifications=parse_notification_defaults(_section(data, "notifications")),
        database_url=database_url,
        checksum=compute_checksum(data),
    )


def load_engine_config(path: Path | str) -> EngineConfig:
    """Load and validate the configuration file at ``path``."""
    return parse_engine_config(load_yaml_file(Path(path)))
