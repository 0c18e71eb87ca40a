"""
stock_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It reads the YAML file named by ``STOCK_ENGINE_CONFIG``
    (or the bundled ``defaults.yaml``) and lets ``DATABASE_URL`` override
    the database URL.

Architecture position:
    Configuration -- sits above stock_kernel and below stock_services.
    stock_kernel MUST NEVER import from stock_config.

Failure modes:
    - ``FileNotFoundError`` -- STOCK_ENGINE_CONFIG names a missing file.
    - ``ValueError`` -- schema or range validation failures.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from stock_config.loader import load_engine_config
from stock_config.schema import (
    AlertDefaults,
    EngineConfig,
    NotificationDefaults,
    ReorderDefaults,
    SchedulerDefaults,
)
from stock_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_PATH_ENV = "STOCK_ENGINE_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """
    Load the active configuration.

    Resolution order for the file: ``path`` argument, then
    ``$STOCK_ENGINE_CONFIG``, then the bundled defaults.  ``$DATABASE_URL``
    always wins over the file's ``database_url``.
    """
    config_path = Path(path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_engine_config(config_path)

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database_url=database_url)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_path": str(config_path),
            "checksum": config.checksum,
            "database_override": bool(database_url),
        },
    )
    return config


__all__ = [
    "AlertDefaults",
    "EngineConfig",
    "NotificationDefaults",
    "ReorderDefaults",
    "SchedulerDefaults",
    "get_active_config",
    "load_engine_config",
]
