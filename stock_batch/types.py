"""
stock_batch.types -- Scheduler status DTO.

ZERO I/O.  Sweep run results themselves live in stock_kernel.domain.types
because the operator surface returns them too.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from stock_kernel.domain.types import SweepRunStatus


@dataclass(frozen=True)
class SchedulerStatus:
    """Snapshot of the background scheduler."""

    running: bool
    interval_minutes: int
    last_run_at: datetime | None = None
    last_status: SweepRunStatus | None = None
    last_sweep_id: UUID | None = None
