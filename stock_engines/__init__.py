"""
Module: stock_engines
Responsibility:
    Pure calculation layer for the stock alert engine: threshold
    classification, consumption velocity and confidence, and reorder
    analytics.

Architecture position:
    Engines -- zero I/O.  May import stock_kernel.domain and
    stock_kernel.logging_config only.  Engines never read a clock; callers
    pass ``as_of`` explicitly.
"""

from stock_engines.classification import classify, severity
from stock_engines.reorder import (
    build_suggestion,
    calculate_reorder_point,
    days_until_stockout,
    rank_suggestions,
    suggested_reorder_quantity,
    urgency_ratio,
)
from stock_engines.velocity import confidence_score, consumption_velocity

__all__ = [
    "build_suggestion",
    "calculate_reorder_point",
    "classify",
    "confidence_score",
    "consumption_velocity",
    "days_until_stockout",
    "rank_suggestions",
    "severity",
    "suggested_reorder_quantity",
    "urgency_ratio",
]
