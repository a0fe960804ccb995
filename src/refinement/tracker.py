"""Cross-run performance statistics with JSON persistence."""

import json
import logging
from collections import defaultdict, deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .models import PerformanceRecord, PerformanceSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 100

# A run counts as a success when it improved quality by more than this percent
SUCCESS_IMPROVEMENT_PERCENT = 1.0


class StrategyUsage(BaseModel):
    """Usage counters for one strategy."""

    uses: int = 0
    successes: int = 0
    failures: int = 0
    total_processing_time_ms: float = 0.0

    @property
    def average_processing_time_ms(self) -> float:
        return self.total_processing_time_ms / self.uses if self.uses else 0.0


class PerformanceHistoryFile(BaseModel):
    """On-disk form of the tracker: identifiers and numbers only."""

    records: list[PerformanceRecord] = Field(default_factory=list)
    strategy_usage: dict[str, StrategyUsage] = Field(default_factory=dict)
    saved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class PerformanceTracker:
    """
    Records one entry per completed run and aggregates across runs.

    Only the most recent `max_history` records are retained; snapshot()
    is computed over that window. The running aggregates (success count,
    average improvement of successful runs, per-mode timings) cover every
    run recorded since construction or the last clear().
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self._records: deque[PerformanceRecord] = deque(maxlen=max_history)
        self.total_runs = 0
        self.success_count = 0
        self.average_success_improvement = 0.0
        self.processing_time_by_mode: dict[str, list[float]] = defaultdict(list)
        self.strategy_usage: dict[str, StrategyUsage] = {}

    @property
    def records(self) -> list[PerformanceRecord]:
        return list(self._records)

    def record(self, record: PerformanceRecord) -> None:
        """Append a run record and update the running aggregates."""
        self._records.append(record)
        self.total_runs += 1
        self.processing_time_by_mode[record.mode.value].append(record.processing_time_ms)

        if record.percent_improvement > SUCCESS_IMPROVEMENT_PERCENT:
            self.success_count += 1
            n = self.success_count
            self.average_success_improvement = (
                self.average_success_improvement * (n - 1) + record.percent_improvement
            ) / n

        logger.debug(
            f"Recorded run: {record.iterations} iterations, "
            f"{record.percent_improvement:.1f}% improvement, {record.stop_reason.value}"
        )

    def record_strategy(self, strategy_id: str, success: bool, processing_time_ms: float) -> None:
        """Count one application attempt of a strategy."""
        usage = self.strategy_usage.setdefault(strategy_id, StrategyUsage())
        usage.uses += 1
        usage.total_processing_time_ms += processing_time_ms
        if success:
            usage.successes += 1
        else:
            usage.failures += 1

    def snapshot(self) -> PerformanceSnapshot:
        """Averages over the retained history; all zeros when it is empty."""
        records = self._records
        if not records:
            return PerformanceSnapshot()

        total = len(records)
        successes = sum(1 for r in records if r.percent_improvement > SUCCESS_IMPROVEMENT_PERCENT)
        return PerformanceSnapshot(
            average_processing_time=sum(r.processing_time_ms for r in records) / total,
            average_improvement=sum(r.percent_improvement for r in records) / total,
            success_rate=successes / total * 100,
            total_optimizations=total,
            average_iterations=sum(r.iterations for r in records) / total,
        )

    def clear(self) -> None:
        self._records.clear()
        self.total_runs = 0
        self.success_count = 0
        self.average_success_improvement = 0.0
        self.processing_time_by_mode.clear()
        self.strategy_usage.clear()

    def save(self, path: Path) -> Path:
        """Write the retained history and strategy usage as JSON."""
        data = PerformanceHistoryFile(
            records=self.records,
            strategy_usage=self.strategy_usage,
        )
        with open(path, "w") as f:
            json.dump(data.model_dump(mode="json"), f, indent=2)

        logger.info(f"Saved {len(self._records)} performance records to {path}")
        return path

    @classmethod
    def load(cls, path: Path, max_history: int = DEFAULT_MAX_HISTORY) -> Optional["PerformanceTracker"]:
        """Rebuild a tracker from a saved file, or None if it is missing or unreadable."""
        if not path.exists():
            logger.debug(f"No performance history found at {path}")
            return None

        try:
            with open(path) as f:
                data = PerformanceHistoryFile.model_validate(json.load(f))
        except Exception as e:
            logger.warning(f"Failed to load performance history from {path}: {e}")
            return None

        tracker = cls(max_history=max_history)
        for record in data.records:
            tracker.record(record)
        tracker.strategy_usage = dict(data.strategy_usage)

        logger.info(f"Loaded {len(data.records)} performance records from {path}")
        return tracker
