"""
Tests for the derived metrics calculator and the chart series.
"""

import pytest

from fuel_ledger.models.record import FuelRecord, VehicleStats
from fuel_ledger.queries import chart_series, compute_stats, recent_activity


@pytest.fixture
def record(make_fields):
    """Build a FuelRecord with the given id and field overrides."""
    def _record(record_id: str, **overrides) -> FuelRecord:
        return FuelRecord.from_fields(make_fields(**overrides), record_id=record_id)
    return _record


class TestComputeStats:
    """Tests for compute_stats."""

    def test_empty_collection_is_all_zero(self):
        """Test that no records means all-zero stats."""
        assert compute_stats([]) == VehicleStats()

    def test_single_record(self, record):
        """Test that one record gives cost and odometer but no distance."""
        stats = compute_stats([record("a", odometer=5000, total_cost=42.5, volume=30)])
        assert stats.total_distance == 0
        assert stats.average_efficiency == 0
        assert stats.total_cost == 42.5
        assert stats.last_odometer == 5000

    def test_first_fillup_volume_is_excluded(self, record):
        """Test the two-record efficiency example."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=1000, volume=10, total_cost=5)
        b = record("b", timestamp="2024-01-08T08:00:00", odometer=1400, volume=20, total_cost=9)
        stats = compute_stats([a, b])
        assert stats.total_distance == 400
        assert stats.average_efficiency == 20
        assert stats.total_cost == 14
        assert stats.last_odometer == 1400

    def test_input_order_does_not_matter(self, record):
        """Test that records are put in time order before computing."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=1000, volume=10)
        b = record("b", timestamp="2024-01-08T08:00:00", odometer=1400, volume=20)
        c = record("c", timestamp="2024-01-15T08:00:00", odometer=1700, volume=20)
        assert compute_stats([c, a, b]) == compute_stats([a, b, c])
        assert compute_stats([c, a, b]).average_efficiency == 700 / 40

    def test_decreasing_odometer_gives_negative_distance(self, record):
        """Test that a non-monotonic odometer is reported, not clamped."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=2000, volume=10)
        b = record("b", timestamp="2024-01-08T08:00:00", odometer=1500, volume=25)
        stats = compute_stats([a, b])
        assert stats.total_distance == -500
        assert stats.average_efficiency == -20

    def test_zero_volume_gives_zero_efficiency(self, record):
        """Test the division guard."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=1000, volume=10)
        b = record("b", timestamp="2024-01-08T08:00:00", odometer=1400, volume=0)
        stats = compute_stats([a, b])
        assert stats.total_distance == 400
        assert stats.average_efficiency == 0

    def test_full_tank_flag_is_ignored(self, record):
        """Test that partial fill-ups count like full ones."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=1000, volume=10)
        b = record("b", timestamp="2024-01-08T08:00:00", odometer=1400, volume=20, full_tank=False)
        assert compute_stats([a, b]).average_efficiency == 20

    def test_unparseable_timestamp_counts_as_earliest(self, record):
        """Test that a degraded timestamp sorts before every real one."""
        degraded = record("a", timestamp="last tuesday", odometer=900, volume=50)
        later = record("b", timestamp="2024-01-08T08:00:00", odometer=1400, volume=20)
        stats = compute_stats([later, degraded])
        assert stats.total_distance == 500
        assert stats.last_odometer == 1400

    def test_equal_timestamps_keep_insertion_order(self, record):
        """Test that ties are resolved by input order."""
        a = record("a", timestamp="2024-01-01T08:00:00", odometer=1000, volume=10)
        b = record("b", timestamp="2024-01-01T08:00:00", odometer=1100, volume=30)
        stats = compute_stats([a, b])
        assert stats.last_odometer == 1100
        assert stats.average_efficiency == 100 / 30


class TestChartSeries:
    """Tests for the spending trend series."""

    def test_empty(self):
        """Test that no records means no points."""
        assert chart_series([]) == []

    def test_keeps_last_ten_chronologically(self, record):
        """Test the window holds the ten most recent fill-ups, oldest first."""
        records = [
            record(str(day), timestamp=f"2024-01-{day:02d}T12:00:00", total_cost=float(day))
            for day in range(1, 16)
        ]
        points = chart_series(list(reversed(records)))
        assert len(points) == 10
        assert [p.cost for p in points] == [float(day) for day in range(6, 16)]

    def test_short_date_labels(self, record):
        """Test labels like "Jan 5"."""
        points = chart_series([record("a", timestamp="2024-01-05T12:00:00")])
        assert points[0].label == "Jan 5"

    def test_unparseable_timestamp_label_is_raw_text(self, record):
        """Test that a degraded timestamp is shown as typed."""
        points = chart_series([record("a", timestamp="sometime")])
        assert points[0].label == "sometime"

    def test_custom_window(self, record):
        """Test a smaller window."""
        records = [
            record(str(day), timestamp=f"2024-02-{day:02d}T12:00:00", total_cost=float(day))
            for day in range(1, 6)
        ]
        assert [p.cost for p in chart_series(records, window=2)] == [4.0, 5.0]


class TestRecentActivity:
    """Tests for the dashboard activity list."""

    def test_most_recently_added_first(self, record):
        """Test insertion order, newest first, capped at three."""
        records = [record(str(i), timestamp=f"2024-01-{i:02d}T12:00:00") for i in range(1, 6)]
        assert [r.id for r in recent_activity(records)] == ["5", "4", "3"]

    def test_uses_insertion_not_timestamp_order(self, record):
        """Test that a back-dated entry added last still shows first."""
        newer = record("newer", timestamp="2024-05-01T12:00:00")
        backdated = record("backdated", timestamp="2023-01-01T12:00:00")
        assert recent_activity([newer, backdated])[0].id == "backdated"

    def test_fewer_than_count(self, record):
        """Test a short collection."""
        assert len(recent_activity([record("a")])) == 1
