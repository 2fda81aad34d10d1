"""
Derived Metrics Calculator

DESIGN DECISION: Metrics are DERIVED, never stored.
Every view recomputes them from the record collection, so an edit or a
delete is reflected immediately and no cached figure can drift from the
records it came from.

Efficiency model: the volume bought at the chronologically first fill-up
was burned before any distance was recorded, so it is excluded from the
volume total. Distance is simply last minus first odometer reading; a
decreasing odometer yields a negative distance and is NOT corrected.
"""

from typing import Iterable

from fuel_ledger.models.record import ChartPoint, FuelRecord, VehicleStats


def chronological(records: Iterable[FuelRecord]) -> list[FuelRecord]:
    """Records sorted by timestamp ascending. Ties keep their input order."""
    return sorted(records, key=lambda record: record.sort_key)


def compute_stats(records: Iterable[FuelRecord]) -> VehicleStats:
    """
    Summarise the whole record collection.

    Returns all-zero stats for an empty collection, and zero distance and
    efficiency when fewer than two records exist.
    """
    ordered = chronological(records)
    if not ordered:
        return VehicleStats()

    total_cost = sum(record.total_cost for record in ordered)
    last_odometer = ordered[-1].odometer

    if len(ordered) < 2:
        return VehicleStats(total_cost=total_cost, last_odometer=last_odometer)

    total_distance = last_odometer - ordered[0].odometer
    total_volume = sum(record.volume for record in ordered[1:])
    average_efficiency = total_distance / total_volume if total_volume > 0 else 0.0

    return VehicleStats(
        total_cost=total_cost,
        total_distance=total_distance,
        average_efficiency=average_efficiency,
        last_odometer=last_odometer,
    )


def chart_label(record: FuelRecord) -> str:
    """Short local date such as "Jan 5"; the raw text if it cannot be parsed."""
    moment = record.moment
    if moment is None:
        return record.timestamp
    local = moment.astimezone()
    return f"{local.strftime('%b')} {local.day}"


def chart_series(records: Iterable[FuelRecord], window: int = 10) -> list[ChartPoint]:
    """Spending per fill-up for the `window` most recent records, oldest first."""
    if window <= 0:
        return []
    recent = chronological(records)[-window:]
    return [
        ChartPoint(label=chart_label(record), cost=record.total_cost)
        for record in recent
    ]


def recent_activity(records: Iterable[FuelRecord], count: int = 3) -> list[FuelRecord]:
    """
    The most recently ADDED records, newest first.

    Uses insertion order, not timestamps: a back-dated fill-up that was
    just entered still shows up here.
    """
    if count <= 0:
        return []
    return list(reversed(list(records)))[:count]
