"""
Module: stock_kernel.selectors.alert_selector
Responsibility: Read access to stock alerts for the operator surface and
    the lifecycle manager.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.types import StockAlert
from stock_kernel.exceptions import AlertNotFoundError
from stock_kernel.models.alert import StockAlertModel
from stock_kernel.selectors.base import BaseSelector


class AlertSelector(BaseSelector):
    """Queries over ``stock_alerts``."""

    def get(self, alert_id: UUID) -> StockAlert:
        model = self.session.get(StockAlertModel, alert_id)
        if model is None:
            raise AlertNotFoundError(str(alert_id))
        return model.to_dto()

    def open_alert_for(self, item_id: UUID) -> StockAlert | None:
        model = self.session.scalars(
            select(StockAlertModel)
            .where(StockAlertModel.item_id == item_id)
            .where(StockAlertModel.resolved.is_(False))
        ).first()
        return model.to_dto() if model is not None else None

    def active_alerts(self) -> Sequence[StockAlert]:
        """Unresolved alerts, newest first."""
        stmt = (
            select(StockAlertModel)
            .where(StockAlertModel.resolved.is_(False))
            .order_by(StockAlertModel.created_at.desc())
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def history(self, limit: int = 50) -> Sequence[StockAlert]:
        """All alerts, resolved or not, newest first."""
        stmt = (
            select(StockAlertModel)
            .order_by(StockAlertModel.created_at.desc())
            .limit(limit)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]
