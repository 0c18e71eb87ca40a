"""
AlertSettingsService -- the stored AlertSettings singleton.

Responsibility:
    Reads and updates the single ``alert_settings`` row.  The first read
    seeds the row from configured defaults.  Sweeps read settings once at
    the start of each run, so an update takes effect on the next cycle.

Failure modes:
    - InvalidSettingsError: unknown field, wrong type, or out-of-range value.
      Nothing is written.
"""

from dataclasses import fields, replace
from typing import Any
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.clock import Clock
from stock_kernel.domain.types import AlertSettings, normalize_recipients
from stock_kernel.exceptions import InvalidSettingsError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.alert import AlertSettingsModel
from stock_kernel.services.base import BaseService

logger = get_logger("services.settings")

_BOOL_FIELDS = frozenset({"enabled", "notify_by_email", "notify_by_sms"})
_INT_FIELDS = frozenset({"check_interval_minutes", "cooldown_hours"})
_RECIPIENT_FIELDS = frozenset({"recipient_emails", "recipient_phones"})
_KNOWN_FIELDS = frozenset(f.name for f in fields(AlertSettings))


class AlertSettingsService(BaseService):
    """Reads and writes the process-wide AlertSettings row."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        defaults: AlertSettings | None = None,
    ):
        super().__init__(session, clock)
        self._defaults = defaults or AlertSettings()

    def get(self) -> AlertSettings:
        return self._get_or_create().to_dto()

    def update(self, updated_by: UUID | None = None, **changes: Any) -> AlertSettings:
        """
        Apply ``changes`` to the stored settings and return the new value.

        Recipient fields accept a list or a comma-separated string; entries
        are trimmed and empty ones dropped.
        """
        for name in changes:
            if name not in _KNOWN_FIELDS:
                raise InvalidSettingsError(name, "unknown setting")

        cleaned: dict[str, Any] = {}
        for name, value in changes.items():
            if name in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise InvalidSettingsError(name, "must be true or false")
                cleaned[name] = value
            elif name in _INT_FIELDS:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise InvalidSettingsError(name, "must be an integer")
                cleaned[name] = value
            elif name in _RECIPIENT_FIELDS:
                cleaned[name] = normalize_recipients(value)

        model = self._get_or_create()
        new_settings = replace(model.to_dto(), **cleaned)
        model.apply(new_settings, updated_by_id=updated_by)
        self.session.flush()

        logger.info(
            "alert_settings_updated",
            extra={"fields": sorted(cleaned), "updated_by": updated_by},
        )
        return new_settings

    def _get_or_create(self) -> AlertSettingsModel:
        model = self.session.scalars(
            select(AlertSettingsModel).order_by(AlertSettingsModel.created_at).limit(1)
        ).first()
        if model is None:
            model = AlertSettingsModel.from_dto(self._defaults)
            self.session.add(model)
            self.session.flush()
            logger.info("alert_settings_seeded")
        return model
