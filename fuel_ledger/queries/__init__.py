"""Derived views over the record collection."""

from fuel_ledger.queries.metrics import (
    chart_label,
    chart_series,
    chronological,
    compute_stats,
    recent_activity,
)
from fuel_ledger.queries.ordering import DEFAULT_SORT_MODE, order_records

__all__ = [
    "DEFAULT_SORT_MODE",
    "chart_label",
    "chart_series",
    "chronological",
    "compute_stats",
    "order_records",
    "recent_activity",
]
