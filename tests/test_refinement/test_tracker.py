"""Tests for the performance tracker."""

import json

import pytest

from src.refinement.models import OptimizationMode, PerformanceRecord, StopReason
from src.refinement.tracker import PerformanceTracker


def make_record(percent=0.0, iterations=1, processing_time_ms=100.0, mode=OptimizationMode.STANDARD):
    return PerformanceRecord(
        processing_time_ms=processing_time_ms,
        iterations=iterations,
        initial_quality=0.5,
        final_quality=0.5 * (1 + percent / 100),
        percent_improvement=percent,
        strategies_applied=["clarity"] * iterations,
        stop_reason=StopReason.CONVERGENCE_REACHED,
        mode=mode,
    )


class TestPerformanceTracker:
    """Tests for PerformanceTracker."""

    def test_empty_snapshot(self):
        """An empty history reports zeros."""
        snapshot = PerformanceTracker().snapshot()
        assert snapshot.total_optimizations == 0
        assert snapshot.success_rate == 0.0
        assert snapshot.average_improvement == 0.0
        assert snapshot.average_iterations == 0.0
        assert snapshot.average_processing_time == 0.0

    def test_snapshot_averages(self):
        """Snapshot averages over the retained history."""
        tracker = PerformanceTracker()
        tracker.record(make_record(percent=5.0, iterations=2, processing_time_ms=100))
        tracker.record(make_record(percent=0.5, iterations=4, processing_time_ms=300))

        snapshot = tracker.snapshot()
        assert snapshot.total_optimizations == 2
        assert snapshot.success_rate == pytest.approx(50.0)
        assert snapshot.average_improvement == pytest.approx(2.75)
        assert snapshot.average_iterations == pytest.approx(3.0)
        assert snapshot.average_processing_time == pytest.approx(200.0)

    def test_success_requires_more_than_one_percent(self):
        """Exactly 1% is not a success."""
        tracker = PerformanceTracker()
        tracker.record(make_record(percent=1.0))
        assert tracker.success_count == 0
        assert tracker.snapshot().success_rate == 0.0

    def test_history_is_capped(self):
        """Only the most recent records are kept."""
        tracker = PerformanceTracker(max_history=3)
        for i in range(5):
            tracker.record(make_record(iterations=i + 1))

        assert tracker.snapshot().total_optimizations == 3
        assert [r.iterations for r in tracker.records] == [3, 4, 5]
        assert tracker.total_runs == 5

    def test_default_cap_is_one_hundred(self):
        """The default history holds 100 records."""
        tracker = PerformanceTracker()
        for _ in range(105):
            tracker.record(make_record())
        assert len(tracker.records) == 100

    def test_running_average_over_successes(self):
        """Average improvement of successful runs ignores failures."""
        tracker = PerformanceTracker()
        for percent in (10.0, 0.5, 20.0):
            tracker.record(make_record(percent=percent))

        assert tracker.success_count == 2
        assert tracker.average_success_improvement == pytest.approx(15.0)

    def test_processing_time_by_mode(self):
        """Processing times are grouped by mode."""
        tracker = PerformanceTracker()
        tracker.record(make_record(processing_time_ms=10, mode=OptimizationMode.QUICK))
        tracker.record(make_record(processing_time_ms=20, mode=OptimizationMode.QUICK))
        tracker.record(make_record(processing_time_ms=30))

        assert tracker.processing_time_by_mode["quick"] == [10, 20]
        assert tracker.processing_time_by_mode["standard"] == [30]

    def test_record_strategy(self):
        """Strategy attempts are counted."""
        tracker = PerformanceTracker()
        tracker.record_strategy("clarity", True, 10.0)
        tracker.record_strategy("clarity", False, 30.0)

        usage = tracker.strategy_usage["clarity"]
        assert (usage.uses, usage.successes, usage.failures) == (2, 1, 1)
        assert usage.average_processing_time_ms == pytest.approx(20.0)

    def test_clear(self):
        """clear() resets everything."""
        tracker = PerformanceTracker()
        tracker.record(make_record(percent=5.0))
        tracker.record_strategy("clarity", True, 1.0)
        tracker.clear()

        assert tracker.records == []
        assert tracker.success_count == 0
        assert tracker.strategy_usage == {}

    def test_invalid_cap(self):
        """A cap below one is rejected."""
        with pytest.raises(ValueError):
            PerformanceTracker(max_history=0)


class TestTrackerPersistence:
    """Tests for saving and loading tracker history."""

    def test_save_and_load(self, tmp_path):
        """A saved tracker reloads with the same statistics."""
        path = tmp_path / "history.json"
        tracker = PerformanceTracker()
        tracker.record(make_record(percent=5.0, iterations=2))
        tracker.record(make_record(percent=0.0, iterations=1, mode=OptimizationMode.QUICK))
        tracker.record_strategy("clarity", True, 12.0)
        tracker.save(path)

        loaded = PerformanceTracker.load(path)

        assert loaded is not None
        assert loaded.snapshot() == tracker.snapshot()
        assert loaded.strategy_usage["clarity"].uses == 1
        assert loaded.records[1].mode is OptimizationMode.QUICK

    def test_saved_file_holds_only_data(self, tmp_path):
        """The file is plain JSON with records and usage."""
        path = tmp_path / "history.json"
        tracker = PerformanceTracker()
        tracker.record(make_record())
        tracker.save(path)

        data = json.loads(path.read_text())
        assert set(data) == {"records", "strategy_usage", "saved_at"}
        assert data["records"][0]["stop_reason"] == "convergenceReached"

    def test_load_missing(self, tmp_path):
        """Missing files load as None."""
        assert PerformanceTracker.load(tmp_path / "missing.json") is None

    def test_load_corrupt(self, tmp_path):
        """Unreadable files load as None."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert PerformanceTracker.load(path) is None
